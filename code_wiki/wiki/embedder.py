"""
Embedding client for the matcher's vector tier and knowledge vector sync.

Calls the OpenAI Embeddings API (text-embedding-3-small by default).
Single-text lookups are memoised in a small LRU so repeated summaries
within a run do not hit the API twice.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMBED_MODEL = "text-embedding-3-small"
BATCH_SIZE = 100
MAX_RETRIES = 3
MAX_CACHE_SIZE = 100


def _get_openai_client(api_key: str, base_url: Optional[str] = None):
    """Return an openai.OpenAI client, raising ImportError if not installed."""
    try:
        import openai  # type: ignore
    except ImportError as exc:
        raise ImportError(
            "openai package is required for embedding. "
            "Install it with: pip install 'code_wiki[semantic]'"
        ) from exc
    if not api_key:
        raise EnvironmentError(
            "OPENAI_API_KEY environment variable is not set."
        )
    if base_url:
        return openai.OpenAI(api_key=api_key, base_url=base_url)
    return openai.OpenAI(api_key=api_key)


def _embed_batch(client, texts: list[str], model: str = EMBED_MODEL) -> list[list[float]]:
    """
    Embed a batch of texts via the OpenAI Embeddings API.

    Retries up to MAX_RETRIES times with exponential back-off on failure.

    Raises
    ------
    RuntimeError
        If all retries are exhausted.
    """
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            response = client.embeddings.create(model=model, input=texts)
            return [item.embedding for item in response.data]
        except Exception as exc:
            if attempt < MAX_RETRIES:
                wait = 2 ** attempt
                logger.warning(
                    "Embedding API error (attempt %d/%d): %s, retrying in %ds",
                    attempt, MAX_RETRIES, exc, wait,
                )
                time.sleep(wait)
            else:
                raise RuntimeError(
                    f"Embedding API failed after {MAX_RETRIES} attempts: {exc}"
                ) from exc
    return []  # unreachable


class OpenAIEmbedder:
    """
    ``embed(text) -> vector`` backed by the OpenAI Embeddings API.

    Parameters
    ----------
    client:
        An ``openai.OpenAI`` client instance.
    model:
        Embedding model name.
    """

    def __init__(self, client, model: str = EMBED_MODEL) -> None:
        self._client = client
        self._model = model
        self._cache: "OrderedDict[str, list[float]]" = OrderedDict()

    @classmethod
    def from_config(cls, config: "Config") -> "OpenAIEmbedder":
        client = _get_openai_client(config.OPENAI_API_KEY, config.OPENAI_BASE_URL)
        return cls(client, model=config.EMBEDDING_MODEL)

    def embed(self, text: str) -> list[float]:
        cached = self._cache.get(text)
        if cached is not None:
            self._cache.move_to_end(text)
            return cached
        vector = _embed_batch(self._client, [text], self._model)[0]
        if len(self._cache) >= MAX_CACHE_SIZE:
            self._cache.popitem(last=False)
        self._cache[text] = vector
        return vector

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in batches of BATCH_SIZE, bypassing the LRU."""
        vectors: list[list[float]] = []
        for start in range(0, len(texts), BATCH_SIZE):
            vectors.extend(_embed_batch(self._client, texts[start:start + BATCH_SIZE], self._model))
        return vectors

    def clear_cache(self) -> None:
        self._cache.clear()


def create_embedder(config: "Config") -> Optional[OpenAIEmbedder]:
    """
    Return an embedder for *config*, or None when embeddings are unavailable.

    The vector tier is optional: a missing API key or openai package only
    disables it.
    """
    try:
        return OpenAIEmbedder.from_config(config)
    except (ImportError, EnvironmentError) as exc:
        logger.info("Vector matching disabled: %s", exc)
        return None
