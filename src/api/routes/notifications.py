"""Notification feed endpoints."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import get_engine
from src.api.models import (
    BulkIdsRequest,
    ChangedResponse,
    CountResponse,
    CreateNotificationRequest,
    NotificationListResponse,
    NotificationResponse,
    StatisticsResponse,
    TimelinePoint,
    TimelineResponse,
)
from src.notifications import (
    NotificationEngine,
    NotificationFilter,
    NotificationPriority,
    NotificationType,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    type: Optional[list[NotificationType]] = Query(default=None),
    priority: Optional[list[NotificationPriority]] = Query(default=None),
    min_priority: Optional[NotificationPriority] = None,
    read: Optional[bool] = None,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    q: Optional[str] = Query(default=None, max_length=200),
    limit: int = Query(default=50, ge=1, le=200),
    engine: NotificationEngine = Depends(get_engine),
) -> NotificationListResponse:
    """Newest-first feed, optionally filtered."""
    notification_filter = NotificationFilter(
        types=frozenset(type) if type else None,
        priorities=frozenset(priority) if priority else None,
        min_priority=min_priority,
        read=read,
        since=since,
        until=until,
        query=q,
    )
    matched = engine.list(notification_filter)
    return NotificationListResponse(
        notifications=[NotificationResponse.from_record(n) for n in matched[:limit]],
        total=len(matched),
        unread=engine.unread_count(),
    )


@router.post("", response_model=NotificationResponse, status_code=201)
def create_notification(
    request: CreateNotificationRequest,
    engine: NotificationEngine = Depends(get_engine),
) -> NotificationResponse:
    """Route and store a notification from a direct trigger."""
    record = engine.push(request.to_candidate())
    return NotificationResponse.from_record(record)


@router.delete("", response_model=CountResponse)
async def clear_notifications(engine: NotificationEngine = Depends(get_engine)) -> CountResponse:
    return CountResponse(count=engine.clear_notifications())


@router.get("/statistics", response_model=StatisticsResponse)
async def get_statistics(engine: NotificationEngine = Depends(get_engine)) -> StatisticsResponse:
    return StatisticsResponse.from_stats(engine.get_statistics())


@router.get("/statistics/timeline", response_model=TimelineResponse)
async def get_timeline(
    freq: str = Query(default="D", pattern="^(h|D|W)$"),
    engine: NotificationEngine = Depends(get_engine),
) -> TimelineResponse:
    """Notification volume per period and priority."""
    frame = engine.get_timeline(freq=freq)
    points = [
        TimelinePoint(period=period.to_pydatetime(), **{k: int(v) for k, v in row.items()})
        for period, row in frame.iterrows()
    ]
    return TimelineResponse(freq=freq, points=points)


@router.post("/read-all", response_model=CountResponse)
async def mark_all_read(engine: NotificationEngine = Depends(get_engine)) -> CountResponse:
    return CountResponse(count=engine.mark_all_read())


@router.post("/read", response_model=CountResponse)
async def mark_selected_read(
    request: BulkIdsRequest,
    engine: NotificationEngine = Depends(get_engine),
) -> CountResponse:
    return CountResponse(count=engine.mark_read_many(request.ids))


@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(
    notification_id: str,
    engine: NotificationEngine = Depends(get_engine),
) -> NotificationResponse:
    return NotificationResponse.from_record(engine.get(notification_id))


@router.post("/{notification_id}/read", response_model=ChangedResponse)
async def mark_read(
    notification_id: str,
    engine: NotificationEngine = Depends(get_engine),
) -> ChangedResponse:
    """Mark one notification read; unknown or already-read ids change nothing."""
    return ChangedResponse(changed=engine.mark_read(notification_id))


@router.delete("/{notification_id}", response_model=ChangedResponse)
async def delete_notification(
    notification_id: str,
    engine: NotificationEngine = Depends(get_engine),
) -> ChangedResponse:
    return ChangedResponse(changed=engine.delete_notification(notification_id))
