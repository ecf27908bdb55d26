"""Ranked search router"""

from fastapi import APIRouter, Depends

from carefinder.core.dependencies import get_ranking_engine
from carefinder.schemas.entity import CollectionName
from carefinder.schemas.query import SearchQuery, SearchResponse
from carefinder.services.ranking import RankingEngine


router = APIRouter(tags=["search"])


@router.post(
    "/collections/{collection}/search",
    response_model=SearchResponse,
    summary="Ranked nearest-match search",
)
async def search_collection(
    collection: CollectionName,
    query: SearchQuery,
    engine: RankingEngine = Depends(get_ranking_engine),
) -> SearchResponse:
    return await engine.search(collection, query)
