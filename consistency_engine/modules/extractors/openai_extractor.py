"""
OpenAI Embedding Extractor.

Embeds generated content in two steps: a vision-capable chat model
describes the image, then the embedding model embeds that description.
Text (entity descriptions) goes straight to the embedding model, so
content and references share one vector space.
"""

import hashlib
import logging
import os

import numpy as np
import openai
from openai import OpenAI

from consistency_engine.core.config_loader import OpenAIConfig
from consistency_engine.core.embedding_cache import EmbeddingCache
from consistency_engine.core.exceptions import (
    EmbeddingExtractionError,
    ErrorCode,
)
from consistency_engine.core.interfaces import (
    CONTENT_TYPES,
    ContentType,
    EmbeddingExtractor,
    TextEmbedder,
)
from consistency_engine.core.vector_math import as_vector

logger = logging.getLogger(__name__)

SERVICE_NAME = "OpenAI"

DESCRIPTION_PROMPT = (
    "Describe the visual content of this image precisely: subjects, their "
    "physical attributes, clothing, colors, setting and style. Use plain "
    "factual sentences."
)
DESCRIPTION_MAX_TOKENS = 400


def translate_openai_error(error: Exception) -> EmbeddingExtractionError:
    """Map an OpenAI SDK exception to an EmbeddingExtractionError.

    Timeouts, connection failures, rate limits and 5xx responses get the
    retryable error codes; everything else is EXTERNAL_API_ERROR.
    """
    status_code = getattr(error, "status_code", None)

    if isinstance(error, openai.APITimeoutError):
        code = ErrorCode.TIMEOUT
    elif isinstance(error, openai.APIConnectionError):
        code = ErrorCode.CONNECTION_ERROR
    elif isinstance(error, openai.RateLimitError):
        code = ErrorCode.RATE_LIMIT_EXCEEDED
    elif isinstance(status_code, int) and status_code >= 500:
        code = ErrorCode.SERVICE_UNAVAILABLE
    else:
        code = ErrorCode.EXTERNAL_API_ERROR

    return EmbeddingExtractionError(
        f"OpenAI request failed: {error}",
        service=SERVICE_NAME,
        code=code,
        status_code=status_code,
    )


class OpenAIEmbeddingExtractor(EmbeddingExtractor, TextEmbedder):
    """Content and text embeddings backed by the OpenAI API.

    Video URLs are described like images: the URL is expected to point at
    a representative frame or thumbnail.

    Example:
        extractor = OpenAIEmbeddingExtractor(settings.openai, cache)
        vector = extractor.extract_embedding("https://.../image.png")
    """

    def __init__(
        self,
        config: OpenAIConfig | None = None,
        cache: EmbeddingCache | None = None,
        client: OpenAI | None = None,
    ) -> None:
        """Initialize the extractor.

        Args:
            config: OpenAI settings. Defaults to OpenAIConfig().
            cache: Optional cache of extracted embeddings.
            client: Preconfigured client (created lazily when None).
        """
        self.config = config or OpenAIConfig()
        self.cache = cache
        self._client = client

    @property
    def client(self) -> OpenAI:
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            api_key = os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise EmbeddingExtractionError(
                    "OPENAI_API_KEY environment variable not set",
                    service=SERVICE_NAME,
                )
            self._client = OpenAI(
                api_key=api_key,
                timeout=self.config.timeout,
                max_retries=self.config.max_retries,
            )
        return self._client

    def _compute_hash(self, *parts: str) -> str:
        content = ":".join((self.config.embedding_model, *parts))
        return hashlib.sha256(content.encode()).hexdigest()[:16]

    def _describe(self, content_url: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.config.model,
                messages=[{
                    "role": "user",
                    "content": [
                        {"type": "text", "text": DESCRIPTION_PROMPT},
                        {"type": "image_url", "image_url": {"url": content_url}},
                    ],
                }],
                temperature=self.config.temperature,
                seed=self.config.seed,
                max_tokens=DESCRIPTION_MAX_TOKENS,
            )
        except openai.APIError as e:
            raise translate_openai_error(e) from e

        description = (response.choices[0].message.content or "").strip()
        if not description:
            raise EmbeddingExtractionError(
                "Vision model returned an empty description",
                service=SERVICE_NAME,
                details={"content_url": content_url},
            )
        logger.debug("Described %s: %s...", content_url, description[:60])
        return description

    def _embed(self, text: str) -> np.ndarray:
        params = {"model": self.config.embedding_model, "input": [text]}
        if self.config.dimensions:
            params["dimensions"] = self.config.dimensions

        try:
            response = self.client.embeddings.create(**params)
        except openai.APIError as e:
            raise translate_openai_error(e) from e

        return as_vector(response.data[0].embedding)

    def extract_embedding(
        self,
        content_url: str,
        content_type: ContentType = "image",
    ) -> np.ndarray:
        """Extract an embedding from an image or video URL.

        Raises:
            ValueError: If ``content_type`` is not supported.
            EmbeddingExtractionError: If the OpenAI API fails.
        """
        if content_type not in CONTENT_TYPES:
            raise ValueError(f"Unsupported content type: {content_type}")

        cache_key = self._compute_hash(content_type, content_url)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache HIT for content: %s", content_url)
                return cached

        embedding = self._embed(self._describe(content_url))

        if self.cache is not None:
            self.cache.set(cache_key, embedding)
        return embedding

    def embed_text(self, text: str) -> np.ndarray:
        """Embed a piece of text with the embedding model."""
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")

        cache_key = self._compute_hash("text", text)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        embedding = self._embed(text)
        if self.cache is not None:
            self.cache.set(cache_key, embedding)
        return embedding
