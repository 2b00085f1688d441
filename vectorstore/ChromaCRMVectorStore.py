# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-07
# Description: ChromaCRMVectorStore
# -----------------------------------------------------------------------------
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import chromadb
import numpy as np
from chromadb.api.models.Collection import Collection

import settings
from config.Config import Config
from embedding.EmbeddingErrors import PersistenceError
from embedding.EmbeddingRecord import EmbeddingFingerprint, StoredEmbedding
from records.CRMRecord import RecordType, to_utc
from utility.logging_utils import get_class_logger
from vectorstore.CRMVectorStore import CRMVectorStore


@dataclass
class ChromaCRMVectorStore(CRMVectorStore):
    """
    One Chroma collection per record type ("crm_deals", "crm_contacts", "crm_leads"),
    cosine space, one entry per record keyed by record id. Owner scoping is a
    metadata filter applied on every read, write-check and delete.
    """

    cfg: Optional[Config] = None
    client: Any = None
    collection_prefix: str = settings.VECTOR_COLLECTION_PREFIX
    logger: Any = None

    def __post_init__(self) -> None:
        self.logger = self.logger or get_class_logger(self.__class__)

        if self.client is None:
            if self.cfg is None:
                raise ValueError("ChromaCRMVectorStore needs either cfg or a chromadb client")

            self.logger.info(
                "Initialising Chroma Cloud client "
                f"(tenant={self.cfg.chroma_tenant}, database={self.cfg.chroma_database})"
            )
            self.client = chromadb.CloudClient(
                tenant=self.cfg.chroma_tenant,
                database=self.cfg.chroma_database,
                api_key=self.cfg.chroma_api_key,
            )

        self.collections: Dict[RecordType, Collection] = {}
        for rt in RecordType:
            name = f"{self.collection_prefix}_{rt.table}"
            self.collections[rt] = self.client.get_or_create_collection(
                name=name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=None,  # vectors always come from CRMEmbedder
            )
            self.logger.info("Chroma collection ready: '%s'", name)

    def test_connection(self) -> bool:
        """
        Simple health check: can we talk to Chroma and our collections?
        """
        try:
            for collection in self.collections.values():
                _ = collection.count()
            return True
        except Exception as e:
            self.logger.error("Chroma connection failed: %s", e)
            return False

    @staticmethod
    def _where(owner_id: str) -> Dict[str, Any]:
        return {"owner_id": {"$eq": str(owner_id)}}

    def upsert_embedding(self, embedding: StoredEmbedding) -> None:
        collection = self.collections[embedding.record_type]

        # Ids are global per record type; refuse to overwrite another owner's entry
        existing = self._get_raw(embedding.record_type, embedding.record_id, include=["metadatas"])
        if existing is not None:
            _, meta = existing
            if meta.get("owner_id") != str(embedding.owner_id):
                raise PersistenceError(
                    f"{embedding.record_type.value} '{embedding.record_id}' belongs to another owner"
                )

        vec = embedding.vector
        if hasattr(vec, "tolist"):
            vec = vec.tolist()

        try:
            collection.upsert(
                ids=[embedding.record_id],
                embeddings=[vec],
                metadatas=[{
                    "owner_id": str(embedding.owner_id),
                    "record_type": embedding.record_type.value,
                    "content_hash": embedding.content_hash,
                    "computed_at": embedding.computed_at.isoformat(),
                }],
            )
        except Exception as e:
            self.logger.error(
                "Failed to upsert %s '%s' into '%s': %s",
                embedding.record_type.value,
                embedding.record_id,
                collection.name,
                e,
            )
            raise PersistenceError(f"Chroma upsert failed: {e}") from e

        self.logger.info(
            "Upserted embedding for %s '%s' (owner=%s) into '%s'",
            embedding.record_type.value,
            embedding.record_id,
            embedding.owner_id,
            collection.name,
        )

    def _get_raw(
            self,
            record_type: RecordType,
            record_id: str,
            include: List[str],
    ) -> Optional[Tuple[Any, Dict[str, Any]]]:
        try:
            res: Dict[str, Any] = self.collections[record_type].get(ids=[str(record_id)], include=include)
        except Exception as e:
            raise PersistenceError(f"Chroma get failed: {e}") from e

        ids = res.get("ids") or []
        if len(ids) == 0:
            return None

        embeddings = res.get("embeddings")
        vector = embeddings[0] if embeddings is not None and len(embeddings) > 0 else None
        metadatas = res.get("metadatas") or [{}]
        return vector, dict(metadatas[0] or {})

    def get_embedding(
            self,
            record_type: RecordType,
            owner_id: str,
            record_id: str,
    ) -> Optional[StoredEmbedding]:
        raw = self._get_raw(record_type, record_id, include=["embeddings", "metadatas"])
        if raw is None:
            return None

        vector, meta = raw
        if meta.get("owner_id") != str(owner_id):
            return None

        return StoredEmbedding(
            record_type=record_type,
            record_id=str(record_id),
            owner_id=str(owner_id),
            vector=np.asarray(vector, dtype=np.float32),
            content_hash=str(meta.get("content_hash", "")),
            computed_at=to_utc(meta.get("computed_at")),
        )

    def list_fingerprints(self, record_type: RecordType, owner_id: str) -> Dict[str, EmbeddingFingerprint]:
        try:
            res: Dict[str, Any] = self.collections[record_type].get(
                where=self._where(owner_id),
                include=["metadatas"],
            )
        except Exception as e:
            raise PersistenceError(f"Chroma get failed: {e}") from e

        ids: List[str] = res.get("ids", []) or []
        metas: List[Dict[str, Any]] = res.get("metadatas", []) or []

        out: Dict[str, EmbeddingFingerprint] = {}
        for rid, meta in zip(ids, metas):
            meta = meta or {}
            out[rid] = EmbeddingFingerprint(
                record_id=rid,
                content_hash=str(meta.get("content_hash", "")),
                computed_at=to_utc(meta.get("computed_at")),
            )
        return out

    def count(self, record_type: RecordType, owner_id: str) -> int:
        try:
            res = self.collections[record_type].get(where=self._where(owner_id), include=[])
        except Exception as e:
            raise PersistenceError(f"Chroma get failed: {e}") from e
        return len(res.get("ids", []) or [])

    def query_similar(
            self,
            record_type: RecordType,
            owner_id: str,
            vector: np.ndarray,
            n_results: int,
    ) -> List[Tuple[str, float]]:
        collection = self.collections[record_type]

        # Filtered HNSW queries fail when n_results exceeds the owner's entries
        available = self.count(record_type, owner_id)
        n = min(n_results, available)
        if n <= 0:
            self.logger.debug(
                "No embedded %s for owner '%s'; skipping query",
                record_type.table,
                owner_id,
            )
            return []

        query_vec = vector.tolist() if hasattr(vector, "tolist") else list(vector)

        try:
            res = collection.query(
                query_embeddings=[query_vec],
                n_results=n,
                where=self._where(owner_id),
                include=["distances"],
            )
        except Exception as e:
            self.logger.error(
                "Error querying '%s': %s",
                collection.name,
                str(e),
                exc_info=True,
            )
            raise PersistenceError(f"Chroma query failed: {e}") from e

        ids0 = (res.get("ids") or [[]])[0]
        dists0 = (res.get("distances") or [[]])[0]

        hits: List[Tuple[str, float]] = []
        for rid, dist in zip(ids0, dists0):
            # cosine space: distance = 1 - cosine similarity
            sim = min(1.0, max(0.0, 1.0 - float(dist)))
            hits.append((rid, sim))

        self.logger.info(
            "Chroma search on '%s' complete: returned %d results (requested %d)",
            collection.name,
            len(hits),
            n_results,
        )
        return hits

    def delete_embedding(self, record_type: RecordType, owner_id: str, record_id: str) -> int:
        collection = self.collections[record_type]

        try:
            res: Dict[str, Any] = collection.get(
                ids=[str(record_id)],
                where=self._where(owner_id),
                include=[],
            )
        except Exception as e:
            raise PersistenceError(f"Chroma get failed: {e}") from e

        ids: List[str] = res.get("ids", []) or []
        if not ids:
            self.logger.info(
                "No embedding found for %s '%s' in '%s'",
                record_type.value,
                record_id,
                collection.name,
            )
            return 0

        try:
            collection.delete(ids=ids)
        except Exception as e:
            self.logger.error(
                "Failed to delete %s '%s' from '%s': %s",
                record_type.value,
                record_id,
                collection.name,
                e,
            )
            raise PersistenceError(f"Chroma delete failed: {e}") from e

        self.logger.info(
            "Deleted embedding for %s '%s' from '%s'",
            record_type.value,
            record_id,
            collection.name,
        )
        return len(ids)
