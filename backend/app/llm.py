import json
import re
from typing import Any, Optional, Protocol

from openai import AsyncOpenAI

from backend.app.config import Settings
from backend.app.errors import EnrichmentError
from backend.app.log import get_logger
from backend.app.schemas import EnrichmentKind

logger = get_logger("reviews.llm")


class EnrichmentClient(Protocol):
    async def enrich(self, text: str, rating: int, kind: EnrichmentKind) -> Optional[str]: ...


_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def extract_json_object(content: str) -> str:
    """
    Pull the `{"result": ...}` object out of a model reply. Models sometimes
    wrap it in a ```json fence or add a lead-in sentence; keep only the
    outermost braces.
    """
    s = content.strip()

    fenced = _FENCE_RE.search(s)
    if fenced:
        s = fenced.group(1).strip()

    start, end = s.find("{"), s.rfind("}")
    if start != -1 and end > start and (start, end) != (0, len(s) - 1):
        logger.info(f"Trimmed {len(s) - (end - start + 1)} chars around JSON object")
        s = s[start : end + 1]

    return s


_TASKS = {
    EnrichmentKind.REPLY: (
        "Write a short, polite and personalized reply to the customer who left this review. "
        "If the rating is low, apologize and acknowledge the problem. "
        "If it is high, thank them warmly. Keep it under 60 words."
    ),
    EnrichmentKind.SUMMARY: (
        "Summarize this review in one or two sentences for the business owner, "
        "capturing the sentiment and the main points raised."
    ),
    EnrichmentKind.RECOMMENDED_ACTIONS: (
        "Recommend up to three concrete actions the business should take in response "
        "to this review. Write them as a short numbered list inside the result string."
    ),
}


def build_enrichment_prompt(text: str, rating: int, kind: EnrichmentKind) -> str:
    prompt = f"""
You are assisting a business that collects customer reviews.

Task: {_TASKS[kind]}

Customer rating: {rating}/5 stars.
Customer review:
\"\"\"
{text}
\"\"\"

Return ONLY valid JSON with EXACT keys:

{{ "result": "..." }}
"""
    return prompt


class DeepSeekEnrichmentClient:
    """
    One chat-completion request per enrichment kind via the OpenAI-compatible
    DeepSeek endpoint. No retries, no streaming.
    Raises EnrichmentError on transport errors or malformed output.
    """

    def __init__(self, settings: Settings, client: Optional[Any] = None) -> None:
        self.settings = settings
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.settings.llm_api_key:
                logger.error("DEEPSEEK_API_KEY not set")
                raise EnrichmentError("DEEPSEEK_API_KEY not set")
            self._client = AsyncOpenAI(
                api_key=self.settings.llm_api_key,
                base_url=self.settings.llm_base_url,
            )
        return self._client

    async def enrich(self, text: str, rating: int, kind: EnrichmentKind) -> Optional[str]:
        client = self._get_client()

        messages = [
            {
                "role": "system",
                "content": "You are a customer feedback assistant. Respond ONLY with valid JSON.",
            },
            {
                "role": "user",
                "content": build_enrichment_prompt(text, rating, kind),
            },
        ]

        logger.info(
            f"Calling model={self.settings.llm_model} type={kind.value}, review_chars={len(text)}"
        )

        try:
            response = await client.chat.completions.create(
                model=self.settings.llm_model,
                messages=messages,
                temperature=self.settings.llm_temperature,
                stream=False,
            )
        except Exception as e:
            logger.exception(f"Enrichment request failed type={kind.value}: {type(e).__name__}: {e}")
            raise EnrichmentError(f"Enrichment request failed: {e}", kind=kind) from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            logger.exception(f"Unexpected response format: {type(e).__name__}: {e}; raw_response={response}")
            raise EnrichmentError(f"Unexpected enrichment response format: {e}", kind=kind) from e

        payload = extract_json_object(content or "")

        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.exception(f"JSON parse failed: {e}; content_head={payload[:500]}")
            raise EnrichmentError(f"Failed to parse enrichment JSON: {e}", kind=kind) from e

        if not isinstance(parsed, dict) or "result" not in parsed:
            keys = list(parsed.keys()) if isinstance(parsed, dict) else type(parsed).__name__
            logger.error(f"Enrichment JSON missing 'result': keys={keys}")
            raise EnrichmentError(f"Enrichment JSON missing 'result': {keys}", kind=kind)

        result = parsed["result"]
        if result is None:
            return None
        if isinstance(result, list):
            result = "\n".join(str(item) for item in result)
        result = str(result).strip()
        return result or None
