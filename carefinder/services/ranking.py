"""
Ranking Engine

Per-query pipeline:

    IDLE -> EMBEDDING -> SCORING -> FILTERING -> SORTING -> DONE

No state survives between queries and the pipeline never writes to the
embedding store, so queries run concurrently with each other and with delta
ingestion, and cancelling one at any await point is always safe.
"""

from __future__ import annotations

import asyncio
import enum
import re
from dataclasses import dataclass

from carefinder.core.config import settings
from carefinder.core.exceptions import (
    EmbeddingGeneratorUnavailableError,
    InvalidQueryError,
)
from carefinder.core.logging import get_logger, measure_latency, metrics_counter
from carefinder.embedding.fallback import CharacterEmbedder
from carefinder.embedding.protocol import EmbedderProtocol
from carefinder.schemas.entity import CollectionName, Entity
from carefinder.schemas.query import (
    EmbeddingQuality,
    RankedResult,
    SearchQuery,
    SearchResponse,
)
from carefinder.services.catalog import Catalog, EntityCollection
from carefinder.services.encoding import encode_structured_query
from carefinder.services.filtering import Filterer, build_predicates
from carefinder.services.geo import GeoFilter
from carefinder.vectorstore.vector_math import cosine_similarity

logger = get_logger(__name__)

HIGHLIGHT_FIELDS: tuple[str, ...] = (
    "name",
    "specialization",
    "hospital",
    "hospital_type",
    "description",
    "address",
)


class QueryStage(str, enum.Enum):
    IDLE = "idle"
    EMBEDDING = "embedding"
    SCORING = "scoring"
    FILTERING = "filtering"
    SORTING = "sorting"
    DONE = "done"


@dataclass(frozen=True)
class QueryEmbedding:
    """Query vector tagged with how it was produced."""

    vector: list[float]
    quality: EmbeddingQuality


@dataclass
class _Candidate:
    entity: Entity
    score: float
    distance_km: float | None = None


def normalize_limit(limit: int | None) -> int:
    """`None` means the configured default; anything below 1 becomes 1."""
    if limit is None:
        return settings.search_default_limit
    return max(limit, 1)


def query_terms(query: SearchQuery, min_length: int | None = None) -> list[str]:
    """Lower-cased, de-duplicated highlight terms longer than two characters."""
    min_length = min_length or settings.highlight_min_term_length
    sources = [query.text, *query.symptoms]
    if query.specialization:
        sources.append(query.specialization)

    terms: list[str] = []
    for source in sources:
        for term in re.split(r"\W+", source.lower()):
            if len(term) >= min_length and term not in terms:
                terms.append(term)
    return terms


def extract_highlights(entity: Entity, terms: list[str]) -> list[str]:
    """
    Field excerpts whose text contains any query term (case-insensitive).
    """
    highlights: list[str] = []
    for field_name in HIGHLIGHT_FIELDS:
        value = getattr(entity, field_name, None)
        if not value:
            continue
        lowered = str(value).lower()
        if any(term in lowered for term in terms):
            excerpt = f"{field_name}: ...{value}..."
            if excerpt not in highlights:
                highlights.append(excerpt)
    return highlights


class RankingEngine:
    """
    Ranked nearest-match search over a catalog collection.
    """

    def __init__(
        self,
        catalog: Catalog,
        embedder: EmbedderProtocol,
        *,
        embedding_timeout: float | None = None,
        yield_interval: int | None = None,
    ):
        self.catalog = catalog
        self.embedder = embedder
        self.embedding_timeout = (
            settings.embedding_timeout_seconds if embedding_timeout is None else embedding_timeout
        )
        self.yield_interval = yield_interval or settings.search_yield_interval

    @measure_latency("ranking_search")
    async def search(self, collection_name: CollectionName, query: SearchQuery) -> SearchResponse:
        """
        Run the full ranking pipeline for one query.

        Args:
            collection_name: Target collection
            query: Search request

        Returns:
            Ordered results with the query embedding quality

        Raises:
            InvalidQueryError: If the geo constraint is invalid
            DimensionMismatchError: If the query vector cannot be compared with the collection
        """
        self._validate(query)
        collection = self.catalog.get(collection_name)
        log = logger.bind(collection=collection_name.value)

        log.debug("ranking_stage", stage=QueryStage.EMBEDDING.value)
        embedding = await self.embed_query(query, collection.store.dimension)

        log.debug("ranking_stage", stage=QueryStage.SCORING.value)
        candidates = await self._score(collection, embedding.vector)

        log.debug("ranking_stage", stage=QueryStage.FILTERING.value)
        matched = self._filter(candidates, query)

        log.debug("ranking_stage", stage=QueryStage.SORTING.value)
        matched.sort(key=lambda c: (-c.score, c.entity.id))
        top = matched[: normalize_limit(query.limit)]

        terms = query_terms(query)
        results = [
            RankedResult(
                entity=candidate.entity,
                score=candidate.score,
                distance_km=candidate.distance_km,
                highlights=extract_highlights(candidate.entity, terms),
            )
            for candidate in top
        ]

        log.info(
            "ranking_completed",
            stage=QueryStage.DONE.value,
            quality=embedding.quality.value,
            scored=len(candidates),
            matched=len(matched),
            returned=len(results),
        )
        return SearchResponse(
            results=results,
            embedding_quality=embedding.quality,
            candidates_scored=len(candidates),
            candidates_matched=len(matched),
        )

    async def embed_query(self, query: SearchQuery, dimension: int | None) -> QueryEmbedding:
        """
        Obtain the query vector.

        Text goes to the embedding generator under a timeout; any failure,
        timeout or wrong-sized answer degrades to the character encoding.
        Queries without text are encoded structurally.
        """
        dimension = dimension or settings.vector_dimension
        text = query.text.strip()

        if not text:
            return QueryEmbedding(
                vector=encode_structured_query(query, dimension),
                quality=EmbeddingQuality.STRUCTURED,
            )

        try:
            vector = await asyncio.wait_for(
                self.embedder.embed_query(text), timeout=self.embedding_timeout
            )
            if len(vector) != dimension:
                raise EmbeddingGeneratorUnavailableError(
                    f"Generator returned {len(vector)} dimensions, collection uses {dimension}"
                )
            return QueryEmbedding(vector=list(vector), quality=self.embedder.quality)
        except asyncio.TimeoutError:
            reason = "timeout"
        except EmbeddingGeneratorUnavailableError as e:
            reason = e.message
        except Exception as e:  # noqa: BLE001
            reason = f"{type(e).__name__}: {e}"

        metrics_counter("query_embedding_fallback")
        logger.warning(
            "query_embedding_fallback",
            model=getattr(self.embedder, "model_name", None),
            reason=reason,
        )
        return QueryEmbedding(
            vector=CharacterEmbedder(dimension).encode(text),
            quality=EmbeddingQuality.FALLBACK,
        )

    async def _score(self, collection: EntityCollection, query_vector: list[float]) -> list[_Candidate]:
        store = collection.store
        candidates: list[_Candidate] = []
        for index, entity in enumerate(list(collection.entities.values()), start=1):
            if entity.id in store:
                score = cosine_similarity(query_vector, store.effective_vector(entity.id))
            else:
                score = 0.0
            candidates.append(_Candidate(entity=entity, score=score))
            if index % self.yield_interval == 0:
                await asyncio.sleep(0)
        return candidates

    def _filter(self, candidates: list[_Candidate], query: SearchQuery) -> list[_Candidate]:
        predicates = build_predicates(query.filters, query.category)
        center = query.location.as_tuple() if query.location else None
        radius = query.location.radius_km if query.location else None

        matched: list[_Candidate] = []
        for candidate in candidates:
            if not Filterer.matches(candidate.entity, predicates):
                continue
            if center is not None:
                point = candidate.entity.location.as_tuple()
                candidate.distance_km = GeoFilter.annotate_distance(point, center)
                if radius is not None and not GeoFilter.within_radius(point, center, radius):
                    continue
            matched.append(candidate)
        return matched

    @staticmethod
    def _validate(query: SearchQuery) -> None:
        location = query.location
        if location is None:
            return
        if location.radius_km is not None and location.radius_km < 0:
            raise InvalidQueryError(f"radius_km must be >= 0, got {location.radius_km}")
        if not -180 <= location.longitude <= 180 or not -90 <= location.latitude <= 90:
            raise InvalidQueryError(
                f"Invalid center ({location.longitude}, {location.latitude})"
            )
