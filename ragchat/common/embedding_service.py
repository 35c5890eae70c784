"""
Embedding Service

Generates query embeddings through an OpenAI or Azure OpenAI embedding
deployment (e.g. text-embedding-ada-002).
"""

import logging
from typing import Any, List, Optional

import numpy as np

from .errors import ConfigurationMissingError, UpstreamCallError

logger = logging.getLogger("ragchat.common.embedding_service")


class EmbeddingService:
    """
    Async embedding client for ragchat.

    One instance is shared by all in-flight requests; it holds no
    per-request state.
    """

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        api_version: Optional[str] = None,
        dimensions: Optional[int] = None,
        client: Any = None,
    ):
        """
        Args:
            model: Embedding model, or deployment name for Azure OpenAI
            api_key: OpenAI / Azure OpenAI key
            endpoint: Azure OpenAI endpoint; plain OpenAI is used when empty
            api_version: Azure OpenAI API version
            dimensions: Expected vector length (checked when set)
            client: Pre-built SDK client to share (skips construction)
        """
        self._model = model
        self._dimensions = dimensions
        self._client = client

        if self._client is not None:
            return
        if not api_key:
            logger.info("Embedding API key not provided, embedding service unavailable")
            return

        try:
            if endpoint:
                from openai import AsyncAzureOpenAI
                self._client = AsyncAzureOpenAI(
                    azure_endpoint=endpoint,
                    api_key=api_key,
                    api_version=api_version,
                    max_retries=0,
                )
            else:
                from openai import AsyncOpenAI
                self._client = AsyncOpenAI(api_key=api_key, max_retries=0)
            logger.info("Embedding service initialized with model=%s", model)
        except ImportError:
            logger.warning("openai package not installed")

    @property
    def is_available(self) -> bool:
        """Check if embedding service is available"""
        return self._client is not None

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: List of strings to embed

        Returns:
            List of embedding vectors, one per input text
        """
        if not self.is_available:
            raise ConfigurationMissingError("embedding deployment credentials")

        if not texts:
            return []

        try:
            response = await self._client.embeddings.create(model=self._model, input=texts)
        except Exception as e:
            logger.error("Embedding call failed: %s", e)
            raise UpstreamCallError("embedding", str(e)) from e

        data = sorted(response.data, key=lambda d: d.index)
        matrix = np.asarray([d.embedding for d in data], dtype=np.float64)

        if matrix.ndim != 2 or matrix.shape[0] != len(texts):
            raise UpstreamCallError("embedding", f"unexpected embedding shape {matrix.shape}")
        if self._dimensions and matrix.shape[1] != self._dimensions:
            raise UpstreamCallError(
                "embedding",
                f"dimension mismatch: expected {self._dimensions}, got {matrix.shape[1]}",
            )

        return matrix.tolist()

    async def embed_single(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: String to embed

        Returns:
            Embedding vector
        """
        if not text:
            raise ValueError("Cannot embed empty text")

        embeddings = await self.embed([text])
        return embeddings[0]
