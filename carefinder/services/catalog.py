"""
Entity catalog

Holds the doctor and hospital collections. Each collection pairs its entity
metadata with its own EmbeddingStore. Loading a collection builds a fresh
store and swaps it in as a whole, so in-flight queries keep reading the
collection they started with.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from pydantic import TypeAdapter

from carefinder.core.config import settings
from carefinder.core.logging import get_logger
from carefinder.embedding.protocol import EmbedderProtocol
from carefinder.schemas.entity import COLLECTION_CATEGORY, CollectionName, Entity
from carefinder.services.encoding import encode_profile, profile_text
from carefinder.vectorstore.memory import InMemoryEmbeddingStore

logger = get_logger(__name__)

_ENTITY_LIST = TypeAdapter(list[Entity])


@dataclass(frozen=True)
class EntityCollection:
    """Entity metadata plus embedding store for one collection."""

    name: CollectionName
    entities: dict[str, Entity] = field(default_factory=dict)
    store: InMemoryEmbeddingStore = field(default_factory=InMemoryEmbeddingStore)

    def __len__(self) -> int:
        return len(self.entities)


class Catalog:
    """Registry of the searchable collections."""

    def __init__(self) -> None:
        self._collections: dict[CollectionName, EntityCollection] = {
            name: EntityCollection(name=name, store=InMemoryEmbeddingStore(name.value))
            for name in CollectionName
        }

    def get(self, name: CollectionName) -> EntityCollection:
        return self._collections[name]

    def names(self) -> list[CollectionName]:
        return list(self._collections)

    async def load(
        self,
        name: CollectionName,
        entities: Iterable[Entity],
        *,
        embedder: EmbedderProtocol | None = None,
        encode_missing: bool | None = None,
    ) -> EntityCollection:
        """
        Replace a collection.

        Base vectors come from each entity's `embedding`; when it is absent,
        the embedder (if given) embeds the profile passage, otherwise the
        deterministic profile encoder is used if `encode_missing` is on.
        Entities left without a base vector stay searchable and score 0.

        Raises:
            InvalidDimensionError: If base vectors differ in length
            EmbeddingGeneratorUnavailableError: If the embedder fails
        """
        encode_missing = settings.profile_encode_missing if encode_missing is None else encode_missing
        store = InMemoryEmbeddingStore(name.value)
        loaded: dict[str, Entity] = {}
        expected = COLLECTION_CATEGORY[name]

        for entity in entities:
            if entity.category != expected:
                logger.warning(
                    "collection_entity_category_mismatch",
                    collection=name.value,
                    entity_id=entity.id,
                    category=entity.category.value,
                )
            loaded[entity.id] = entity

            if entity.embedding:
                vector = entity.embedding
            elif embedder is not None:
                vector = await embedder.embed_passage(profile_text(entity))
            elif encode_missing:
                vector = encode_profile(entity, store.dimension or settings.vector_dimension)
            else:
                continue
            store.set_base(entity.id, vector)

        collection = EntityCollection(name=name, entities=loaded, store=store)
        self._collections[name] = collection
        logger.info(
            "collection_loaded",
            collection=name.value,
            entities=len(loaded),
            embedded=len(store),
            dimension=store.dimension,
        )
        return collection

    async def load_seed_file(self, path: str | Path) -> None:
        """
        Load collections from a JSON file shaped {"doctors": [...], "hospitals": [...]}.
        """
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        for name in CollectionName:
            if name.value in payload:
                await self.load(name, _ENTITY_LIST.validate_python(payload[name.value]))


# Singleton instance for dependency injection
_catalog: Catalog | None = None


def get_catalog() -> Catalog:
    global _catalog
    if _catalog is None:
        _catalog = Catalog()
    return _catalog
