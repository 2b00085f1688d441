# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-06
# Description: CRMEmbedder
# -----------------------------------------------------------------------------
import time
from typing import Any, Optional

import numpy as np
import openai
from openai import OpenAI

import settings
from config.Config import Config
from embedding.EmbeddingErrors import InvalidInputError, ProviderError
from utility.logging_utils import get_class_logger


class CRMEmbedder:
    """
    One-text-at-a-time wrapper around the OpenAI embeddings endpoint.

    The SDK's own retries are switched off: retry policy belongs to the caller
    (sync orchestrator / backfill), the client only bounds each call with a timeout.
    """

    def __init__(
            self,
            cfg: Optional[Config] = None,
            *,
            client: Any = None,
            model: Optional[str] = None,
            expected_dim: Optional[int] = settings.EMBED_DIMENSIONS,
            timeout: float = settings.EMBED_TIMEOUT_SECONDS,
            normalize: bool = True,
            logger=None,
    ):
        if cfg is None and client is None:
            raise ValueError("CRMEmbedder needs either cfg or an OpenAI-compatible client")

        self.cfg = cfg
        self.expected_dim = expected_dim
        self.timeout = timeout
        self.normalize = normalize
        self.logger = logger or get_class_logger(self.__class__)

        self.client = client or OpenAI(
            api_key=cfg.openai_api_key,
            base_url=cfg.openai_base_url,
            timeout=timeout,
            max_retries=0,
        )
        self.model = model or (cfg.openai_embed_model if cfg else None) or "text-embedding-3-small"
        self.logger.info(
            "CRMEmbedder initialised (model=%s, expected_dim=%s, timeout=%.1fs)",
            self.model,
            self.expected_dim,
            self.timeout,
        )

    def embed(self, text: str) -> np.ndarray:
        """
        Returns a float32 vector for `text`.

        Raises:
            InvalidInputError: text is empty / whitespace.
            ProviderError: network, auth, rate-limit, timeout or malformed response.
        """
        if text is None or not str(text).strip():
            raise InvalidInputError("Cannot embed empty text")

        start = time.time()
        try:
            resp = self.client.embeddings.create(model=self.model, input=text)
        except openai.APIStatusError as e:
            raise ProviderError(f"Embedding request rejected: {e.message}", status=e.status_code) from e
        except openai.APITimeoutError as e:
            raise ProviderError(f"Embedding request timed out after {self.timeout}s") from e
        except openai.OpenAIError as e:
            raise ProviderError(f"Embedding request failed: {e}") from e

        data = getattr(resp, "data", None) or []
        if not data or not getattr(data[0], "embedding", None):
            raise ProviderError("No embedding data returned in response")

        vec = np.asarray(data[0].embedding, dtype=np.float32)

        if self.expected_dim is not None and vec.shape[0] != self.expected_dim:
            raise ProviderError(
                f"Dimension mismatch: expected {self.expected_dim}, got {vec.shape[0]}"
            )

        # Normalize vectors (cosine-friendly)
        if self.normalize:
            vec = vec / (np.linalg.norm(vec) + 1e-12)

        self.logger.debug(
            "Embedded %d chars in %.1f ms (dim=%d)",
            len(text),
            (time.time() - start) * 1000.0,
            vec.shape[0],
        )
        return vec

    def test_connection(self) -> bool:
        """Embedding smoke test used by /health/deep."""
        try:
            self.embed("CRM embedding healthcheck")
            return True
        except Exception as e:
            self.logger.error("Embedding healthcheck FAILED: %s", e)
            return False
