"""Real-time update event router"""

from fastapi import APIRouter, Depends, status

from carefinder.core.dependencies import get_delta_ingestor
from carefinder.schemas.entity import CollectionName
from carefinder.schemas.events import DeltaReceipt, UpdateEvent
from carefinder.services.delta_ingestor import DeltaIngestor
from carefinder.vectorstore.vector_math import norm


router = APIRouter(tags=["events"])


@router.post(
    "/collections/{collection}/events",
    response_model=DeltaReceipt,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Ingest an operational update event",
)
async def ingest_event(
    collection: CollectionName,
    event: UpdateEvent,
    ingestor: DeltaIngestor = Depends(get_delta_ingestor),
) -> DeltaReceipt:
    record = ingestor.ingest(event)
    return DeltaReceipt(
        entity_id=event.entity_id,
        update_type=event.kind,
        timestamp=record.timestamp,
        delta_length=len(record.vector),
        delta_norm=norm(record.vector),
    )
