"""Metric ingestion and the delivery tick."""

import logging

from fastapi import APIRouter, Depends

from src.api.dependencies import get_engine
from src.api.models import (
    DeliveryResponse,
    IngestRequest,
    IngestResponse,
    NotificationResponse,
    TickRequest,
    TickResponse,
)
from src.notifications import NotificationEngine

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Ingest"])


@router.post("/samples", response_model=IngestResponse)
def ingest_samples(
    request: IngestRequest,
    engine: NotificationEngine = Depends(get_engine),
) -> IngestResponse:
    """Evaluate the active rules against a batch of metric samples."""
    now = engine.now()
    samples = [s.to_sample(now) for s in request.samples]
    result = engine.ingest(samples, now=now)
    return IngestResponse(
        evaluated=result.evaluated,
        fired_rule_ids=result.fired_rule_ids,
        notifications=[NotificationResponse.from_record(n) for n in result.notifications],
        deliveries=[DeliveryResponse.from_intent(i) for i in result.deliveries],
    )


@router.post("/tick", response_model=TickResponse)
def tick(
    request: TickRequest,
    engine: NotificationEngine = Depends(get_engine),
) -> TickResponse:
    """Release deferred deliveries that are due."""
    intents = engine.tick(request.now)
    return TickResponse(
        deliveries=[DeliveryResponse.from_intent(i) for i in intents],
        pending=len(engine.digest),
    )
