"""Chat-completion helpers: contextual chunk situating and summaries."""

import structlog
from openai import AsyncOpenAI, OpenAIError

logger = structlog.get_logger()

DOCUMENT_CONTEXT_LIMIT = 25000
SOURCE_CONTENT_LIMIT = 25000
DEFAULT_CODE_SUMMARY = "Code example for demonstration purposes."

SITUATE_SYSTEM_PROMPT = "You are a helpful assistant that provides concise contextual information."
SOURCE_SYSTEM_PROMPT = "You are a helpful assistant that provides concise library/tool/framework summaries."
CODE_SYSTEM_PROMPT = "You are a helpful assistant that provides concise code example summaries."


class ChatClient:
    """Single-turn chat completions with deterministic fallbacks."""

    def __init__(self, client: AsyncOpenAI | None, model: str = "gpt-4o-mini"):
        self.client = client
        self.model = model

    async def _complete(self, system: str, prompt: str, max_tokens: int) -> str:
        """Return the stripped completion text, or "" when unavailable."""
        if self.client is None:
            return ""
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=0.3,
            max_tokens=max_tokens,
        )
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def situate_chunk(self, full_document: str, chunk: str) -> tuple[str, bool]:
        """
        Prefix a chunk with a short description of where it sits in its document.

        Returns:
            (text, contextualized): ``"{context}\\n---\\n{chunk}"`` and True, or
            the unmodified chunk and False when the model is unavailable.
        """
        prompt = (
            f"<document>\n{full_document[:DOCUMENT_CONTEXT_LIMIT]}\n</document>\n"
            "Here is the chunk we want to situate within the whole document\n"
            f"<chunk>\n{chunk}\n</chunk>\n"
            "Please give a short succinct context to situate this chunk within the overall "
            "document for the purposes of improving search retrieval of the chunk. "
            "Answer only with the succinct context and nothing else."
        )
        try:
            context = await self._complete(SITUATE_SYSTEM_PROMPT, prompt, max_tokens=200)
        except OpenAIError as e:
            logger.warning("situate_chunk_failed", error=str(e))
            return chunk, False

        if not context:
            return chunk, False
        return f"{context}\n---\n{chunk}", True

    async def summarize_source(self, source_id: str, content: str, max_length: int = 500) -> str:
        """Summarize what a source (library, tool, site) is about in 3-5 sentences."""
        default = f"Content from {source_id}"
        if not content or not content.strip():
            return default

        prompt = (
            f"<source_content>\n{content[:SOURCE_CONTENT_LIMIT]}\n</source_content>\n\n"
            f"The above content is from the documentation for '{source_id}'. Please provide a "
            "concise summary (3-5 sentences) that describes what this library/tool/framework is "
            "about. The summary should help understand what the library/tool/framework "
            "accomplishes and the purpose."
        )
        try:
            summary = await self._complete(SOURCE_SYSTEM_PROMPT, prompt, max_tokens=150)
        except OpenAIError as e:
            logger.warning("source_summary_failed", source_id=source_id, error=str(e))
            return default

        if not summary:
            return default
        if len(summary) > max_length:
            summary = summary[:max_length] + "..."
        return summary

    async def summarize_code_example(self, code: str, context_before: str, context_after: str) -> str:
        """Describe what a code example demonstrates in 2-3 sentences."""
        prompt = (
            f"<context_before>\n{context_before[-500:]}\n</context_before>\n\n"
            f"<code_example>\n{code[:1500]}\n</code_example>\n\n"
            f"<context_after>\n{context_after[:500]}\n</context_after>\n\n"
            "Based on the code example and its surrounding context, provide a concise summary "
            "(2-3 sentences) that describes what this code example demonstrates and its purpose. "
            "Focus on the practical application and key concepts illustrated."
        )
        try:
            summary = await self._complete(CODE_SYSTEM_PROMPT, prompt, max_tokens=100)
        except OpenAIError as e:
            logger.warning("code_summary_failed", error=str(e))
            return DEFAULT_CODE_SUMMARY

        return summary or DEFAULT_CODE_SUMMARY
