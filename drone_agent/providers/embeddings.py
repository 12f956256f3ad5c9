"""OpenAI ``/embeddings`` adapter used by the vector store."""

from typing import Any, Dict, List

import httpx

from drone_agent.domain.exceptions import ApiError, NetworkError, RateLimitError, ValidationError
from drone_agent.providers.registry import OPENAI_CONFIG


class OpenAIEmbeddings:
    def __init__(self, settings, model: str | None = None):
        self._settings = settings
        self.model = model or settings.embedding_model

    async def embed_documents(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        data = await self._post({"model": self.model, "input": texts})
        items = sorted(data.get("data") or [], key=lambda d: d.get("index", 0))
        vectors = [list(item.get("embedding") or []) for item in items]
        if len(vectors) != len(texts):
            raise ApiError(
                code="BAD_RESPONSE",
                message=f"Expected {len(texts)} embeddings, got {len(vectors)}",
                http_status=502,
            )
        return vectors

    async def embed_query(self, text: str) -> List[float]:
        vectors = await self.embed_documents([text])
        return vectors[0]

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        api_key = getattr(self._settings, "openai_api_key", None)
        if not api_key:
            raise ValidationError(code="MISSING_API_KEY", message="OPENAI_API_KEY not set")
        base = getattr(self._settings, "openai_base_url", None) or OPENAI_CONFIG.base_url
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.post(
                    f"{base}/embeddings",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__)
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message="embeddings rate limit", http_status=429)
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise ApiError(code="BAD_RESPONSE", message=f"Response is not JSON: {e}", http_status=502)
        if not isinstance(data, dict):
            raise ApiError(
                code="BAD_RESPONSE",
                message=f"Expected a JSON object, got {type(data).__name__}",
                http_status=502,
            )
        return data
