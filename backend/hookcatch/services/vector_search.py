"""Similarity search over indexed blob text."""

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
from sqlalchemy.orm import Session

from hookcatch.repositories.vector_entry_repository import VectorEntryRepository
from hookcatch.services.embeddings import Embedder

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 10


@dataclass
class VectorSearchHit:
    content: str
    metadata: dict[str, Any]
    score: float


def cosine_scores(query: list[float], matrix: list[list[float]]) -> np.ndarray:
    """Cosine similarity of ``query`` against each row of ``matrix``."""
    q = np.asarray(query, dtype=np.float64)
    m = np.asarray(matrix, dtype=np.float64)
    q_norm = np.linalg.norm(q)
    row_norms = np.linalg.norm(m, axis=1)
    denom = row_norms * q_norm
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(denom > 0, m @ q / denom, 0.0)
    return scores


class VectorSearch:
    """Ranks indexed documents by cosine similarity to a query.

    Candidates are scanned in full (optionally narrowed to a key prefix) and
    scored in memory, which suits collections of modest size.
    """

    def __init__(self, db: Session, embedder: Embedder, top_k: int = DEFAULT_TOP_K):
        self.db = db
        self.embedder = embedder
        self.top_k = top_k
        self.repo = VectorEntryRepository(db)

    async def search(
        self,
        query: str,
        prefix: str | None = None,
        top_k: int | None = None,
    ) -> list[VectorSearchHit]:
        """Return the best matches for ``query``, highest score first.

        ``prefix`` limits candidates to keys in ``[prefix, prefix + "\\uffff")``.
        """
        limit = top_k or self.top_k
        logger.debug("Vector search %r (prefix: %s)", query, prefix or "none")

        entries = self.repo.get_in_range(prefix)
        if not entries:
            return []

        [query_vector] = await self.embedder.embed([query])
        candidates = [e for e in entries if e.dimensions == len(query_vector)]
        skipped = len(entries) - len(candidates)
        if skipped:
            logger.warning(
                "Skipped %d vector entries with mismatched dimensions (expected %d)",
                skipped,
                len(query_vector),
            )
        if not candidates:
            return []

        scores = cosine_scores(query_vector, [list(e.embedding) for e in candidates])
        order = np.argsort(-scores, kind="stable")[:limit]
        hits = [
            VectorSearchHit(
                content=str(candidates[i].content),
                metadata=dict(candidates[i].metadata_ or {}),
                score=float(scores[i]),
            )
            for i in order
        ]
        logger.debug("Vector search %r found %d result(s)", query, len(hits))
        return hits

    def list_keys(self, prefix: str | None = None) -> list[str]:
        """List indexed keys.

        Complete for the SQL-backed store; other vector backends may only
        support a partial listing, so callers must not treat it as exhaustive.
        """
        return self.repo.list_keys(prefix)
