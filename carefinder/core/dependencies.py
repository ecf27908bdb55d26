"""
Common FastAPI dependencies
"""

from fastapi import Depends

from carefinder.embedding.factory import get_embedder_instance
from carefinder.embedding.protocol import EmbedderProtocol
from carefinder.schemas.entity import CollectionName
from carefinder.services.catalog import Catalog, get_catalog
from carefinder.services.delta_ingestor import DeltaIngestor
from carefinder.services.ranking import RankingEngine


def get_embedder() -> EmbedderProtocol:
    return get_embedder_instance()


def get_ranking_engine(
    catalog: Catalog = Depends(get_catalog),
    embedder: EmbedderProtocol = Depends(get_embedder),
) -> RankingEngine:
    return RankingEngine(catalog=catalog, embedder=embedder)


def get_delta_ingestor(
    collection: CollectionName,
    catalog: Catalog = Depends(get_catalog),
) -> DeltaIngestor:
    """Ingestor bound to the collection's current store (path parameter)."""
    return DeltaIngestor(catalog.get(collection).store)
