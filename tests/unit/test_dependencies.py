from unittest.mock import AsyncMock

import pytest

from carefinder.core.dependencies import get_delta_ingestor, get_ranking_engine
from carefinder.schemas.entity import CollectionName, Entity, EntityCategory, GeoPoint
from carefinder.services.catalog import Catalog
from carefinder.services.ranking import RankingEngine


@pytest.mark.asyncio
async def test_delta_ingestor_is_bound_to_current_collection_store() -> None:
    catalog = Catalog()
    await catalog.load(
        CollectionName.HOSPITALS,
        [
            Entity(
                id="hosp-1",
                category=EntityCategory.HOSPITAL,
                name="Ruby Hall",
                location=GeoPoint(longitude=73.87, latitude=18.53),
                embedding=[1.0, 0.0],
            )
        ],
    )

    ingestor = get_delta_ingestor(CollectionName.HOSPITALS, catalog=catalog)

    assert ingestor.store is catalog.get(CollectionName.HOSPITALS).store
    assert ingestor.store is not catalog.get(CollectionName.DOCTORS).store


def test_ranking_engine_uses_injected_embedder() -> None:
    catalog = Catalog()
    embedder = AsyncMock()

    engine = get_ranking_engine(catalog=catalog, embedder=embedder)

    assert isinstance(engine, RankingEngine)
    assert engine.catalog is catalog
    assert engine.embedder is embedder
