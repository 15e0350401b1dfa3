"""Vector search API endpoints."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hookcatch.core.context import AppContext, get_context
from hookcatch.core.database import get_db
from hookcatch.core.errors import InternalError
from hookcatch.schemas.storage import VectorSearchHitResponse
from hookcatch.services.embeddings import EmbeddingError
from hookcatch.services.vector_search import VectorSearch

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/search",
    response_model=list[VectorSearchHitResponse],
    summary="Search indexed files",
)
async def search_vectors(
    query: str = Query(..., min_length=1),
    prefix: str | None = Query(default=None),
    top_k: int | None = Query(default=None, ge=1, le=100),
    db: Session = Depends(get_db),
    context: AppContext = Depends(get_context),
) -> list[VectorSearchHitResponse]:
    """Rank indexed files by similarity to ``query``."""
    search = VectorSearch(db, context.embedder, context.settings.VECTOR_SEARCH_TOP_K)
    try:
        hits = await search.search(query, prefix=prefix, top_k=top_k)
    except EmbeddingError as exc:
        logger.exception("Embedding failed for search query")
        raise InternalError("Embedding backend failed") from exc
    return [
        VectorSearchHitResponse(content=hit.content, metadata=hit.metadata, score=hit.score)
        for hit in hits
    ]


@router.get(
    "/keys",
    response_model=list[str],
    summary="List indexed keys",
)
async def list_vector_keys(
    prefix: str | None = Query(default=None),
    db: Session = Depends(get_db),
    context: AppContext = Depends(get_context),
) -> list[str]:
    """List indexed keys (best effort)."""
    return VectorSearch(db, context.embedder).list_keys(prefix)
