import logging
from typing import List, Optional

from openai import OpenAI

from planforge.config import settings

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Raised when embeddings cannot be produced (no key, provider failure)."""


class EmbeddingClient:
    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None):
        self.model = model or settings.embedding_model
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not settings.openai_api_key:
                raise EmbeddingError("OpenAI API key is not configured")
            self._client = OpenAI(api_key=settings.openai_api_key, timeout=settings.ai_request_timeout)
        return self._client

    def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        try:
            response = self.client.embeddings.create(model=self.model, input=texts)
        except EmbeddingError:
            raise
        except Exception as e:
            logger.error(f"Embedding request failed: {e}")
            raise EmbeddingError(str(e)) from e
        return [item.embedding for item in sorted(response.data, key=lambda item: item.index)]

    def embed_one(self, text: str) -> List[float]:
        return self.embed([text])[0]


def get_embedding_client() -> EmbeddingClient:
    return EmbeddingClient()
