"""Notification preference endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from src.api.dependencies import get_engine
from src.api.models import PreferencesResponse
from src.notifications import NotificationEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/preferences", tags=["Preferences"])


@router.get("", response_model=PreferencesResponse)
async def get_preferences(engine: NotificationEngine = Depends(get_engine)) -> PreferencesResponse:
    return PreferencesResponse.from_preferences(engine.get_preferences())


@router.patch("", response_model=PreferencesResponse)
async def update_preferences(
    update: dict[str, Any] = Body(...),
    engine: NotificationEngine = Depends(get_engine),
) -> PreferencesResponse:
    """Deep-merge a partial update.

    Accepts any subset of ``channels``, ``categories``, ``quietHours`` and
    ``frequency``. A malformed update is rejected as a whole with 400.
    """
    return PreferencesResponse.from_preferences(engine.update_preferences(update))
