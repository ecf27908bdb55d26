"""Entity collection loading and vector inspection router"""

from fastapi import APIRouter, Depends, Query

from carefinder.core.dependencies import get_embedder
from carefinder.embedding.protocol import EmbedderProtocol
from carefinder.schemas.collection import (
    CollectionLoadResponse,
    EntityVectorsResponse,
    ProvenanceEntry,
)
from carefinder.schemas.entity import CollectionName, Entity
from carefinder.services.catalog import Catalog, get_catalog


router = APIRouter(tags=["entities"])


@router.put(
    "/collections/{collection}/entities",
    response_model=CollectionLoadResponse,
    summary="Replace a collection",
)
async def load_collection(
    collection: CollectionName,
    entities: list[Entity],
    embed_missing: bool = Query(
        False, description="Embed profiles without an embedding via the embedding generator"
    ),
    catalog: Catalog = Depends(get_catalog),
    embedder: EmbedderProtocol = Depends(get_embedder),
) -> CollectionLoadResponse:
    loaded = await catalog.load(
        collection,
        entities,
        embedder=embedder if embed_missing else None,
    )
    return CollectionLoadResponse(
        collection=collection,
        loaded=len(loaded),
        embedded=len(loaded.store),
        dimension=loaded.store.dimension,
    )


@router.get(
    "/collections/{collection}/entities/{entity_id}/vectors",
    response_model=EntityVectorsResponse,
    summary="Base, delta and effective vectors of an entity",
)
async def get_entity_vectors(
    collection: CollectionName,
    entity_id: str,
    catalog: Catalog = Depends(get_catalog),
) -> EntityVectorsResponse:
    store = catalog.get(collection).store
    effective = store.effective_vector(entity_id)
    delta = store.delta_record(entity_id)
    return EntityVectorsResponse(
        entity_id=entity_id,
        base=store.base_vector(entity_id),
        delta=list(delta.vector) if delta else None,
        delta_timestamp=delta.timestamp if delta else None,
        effective=effective,
        history=[
            ProvenanceEntry(
                update_type=entry.update_type,
                reasoning=entry.reasoning,
                confidence=entry.confidence,
            )
            for entry in store.provenance_history(entity_id)
        ],
    )
