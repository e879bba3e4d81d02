from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# Search Metrics
SEARCH_REQUESTS = Counter(
    "crawl_rag_search_requests_total",
    "Total number of search requests",
    ["status", "mode", "table"]
)

SEARCH_LATENCY = Histogram(
    "crawl_rag_search_latency_seconds",
    "Search request latency in seconds",
    ["mode", "table"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0]
)

RERANK_FAILURES = Counter(
    "crawl_rag_rerank_failures_total",
    "Total number of reranking calls that failed and fell back to merge order",
    ["provider"]
)

# Ingestion Metrics
INGESTION_PAGES = Counter(
    "crawl_rag_ingestion_pages_total",
    "Total number of pages ingested",
    ["crawl_type", "status"]
)

INGESTION_LATENCY = Histogram(
    "crawl_rag_ingestion_latency_seconds",
    "Ingestion pipeline latency in seconds",
    ["crawl_type"]
)

CHUNKS_STORED = Counter(
    "crawl_rag_chunks_stored_total",
    "Total number of document chunks written to the store"
)

CODE_EXAMPLES_STORED = Counter(
    "crawl_rag_code_examples_stored_total",
    "Total number of code examples written to the store"
)

EMBEDDING_FALLBACKS = Counter(
    "crawl_rag_embedding_fallbacks_total",
    "Total number of batch embedding calls that fell back to per-item requests"
)

def get_metrics():
    """Return latest metrics in Prometheus format."""
    return generate_latest(), CONTENT_TYPE_LATEST
