"""
E5 embedding generator

Local sentence-transformers E5 model behind the EmbedderProtocol. The model
is loaded once per process (warmup at startup, or lazily on first use) and
`encode()` runs in the default executor so the event loop keeps serving
queries and delta events while a vector is computed.

E5 expects a "query: " prefix for search text and "passage: " for the
documents being searched (here: entity profiles).
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

from sentence_transformers import SentenceTransformer

from carefinder.core.config import settings
from carefinder.core.exceptions import EmbeddingGeneratorUnavailableError
from carefinder.core.logging import get_logger, log_embedding_call
from carefinder.schemas.query import EmbeddingQuality

logger = get_logger(__name__)

MODEL_LOAD_TIMEOUT_SECONDS = 300  # first run downloads the model


class E5Embedder:
    """
    Process-wide E5 embedder.

    Concurrent encodes are capped by `settings.embedding_max_concurrency`.
    Any failure (load, encode, empty output) surfaces as
    EmbeddingGeneratorUnavailableError so the ranking engine can fall back.
    """

    quality = EmbeddingQuality.MODEL
    _instance: Optional[E5Embedder] = None

    def __new__(cls) -> E5Embedder:
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._configure()
            cls._instance = instance
        return cls._instance

    def _configure(self) -> None:
        self.model_name: str = settings.e5_model_name
        self.device: str = settings.embedding_device
        self.model: Optional[SentenceTransformer] = None
        self._initialized = False
        self._load_lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(settings.embedding_max_concurrency)
        logger.info(
            "e5_embedder_created",
            model_name=self.model_name,
            device=self.device,
            max_concurrency=settings.embedding_max_concurrency,
        )

    @property
    def ready(self) -> bool:
        return self._initialized

    async def warmup(self) -> None:
        """
        Load the model if it is not loaded yet.

        Raises:
            EmbeddingGeneratorUnavailableError: If loading fails or times out
        """
        if self._initialized:
            return

        async with self._load_lock:
            if self._initialized:
                return
            started = time.perf_counter()
            try:
                self.model = await asyncio.wait_for(
                    self._in_executor(SentenceTransformer, self.model_name, device=self.device),
                    timeout=MODEL_LOAD_TIMEOUT_SECONDS,
                )
            except asyncio.TimeoutError as e:
                logger.error("e5_model_load_timeout", model_name=self.model_name)
                raise EmbeddingGeneratorUnavailableError(
                    f"Timed out loading embedding model {self.model_name}"
                ) from e
            except Exception as e:
                logger.error("e5_model_load_failed", model_name=self.model_name, error=str(e))
                raise EmbeddingGeneratorUnavailableError(
                    f"Failed to load embedding model {self.model_name}: {e}"
                ) from e

            self._initialized = True
            logger.info(
                "e5_model_loaded",
                model_name=self.model_name,
                elapsed_seconds=round(time.perf_counter() - started, 2),
            )

    async def embed_query(self, text: str) -> list[float]:
        return await self._embed("query: " + text, operation="embed_query")

    async def embed_passage(self, text: str) -> list[float]:
        return await self._embed("passage: " + text, operation="embed_passage")

    async def _embed(self, prefixed_text: str, *, operation: str) -> list[float]:
        if not self._initialized:
            logger.warning("e5_lazy_model_load", operation=operation)
            await self.warmup()

        started = time.perf_counter()
        try:
            vector = await self._encode(prefixed_text)
        except Exception as e:
            log_embedding_call(
                operation=operation,
                model=self.model_name,
                latency_ms=(time.perf_counter() - started) * 1000,
                error=str(e),
            )
            raise EmbeddingGeneratorUnavailableError(f"{operation} failed: {e}") from e

        log_embedding_call(
            operation=operation,
            model=self.model_name,
            latency_ms=(time.perf_counter() - started) * 1000,
            dimension=len(vector),
        )
        return vector

    async def _encode(self, text: str) -> list[float]:
        model = self.model
        if model is None:
            raise RuntimeError("Embedding model is not loaded")

        async with self._semaphore:
            output = await self._in_executor(model.encode, text, normalize_embeddings=True)

        vector = [float(x) for x in output.tolist()]
        if not vector:
            raise ValueError("Embedding model returned an empty vector")
        return vector

    @staticmethod
    async def _in_executor(func: Any, *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: func(*args, **kwargs))
