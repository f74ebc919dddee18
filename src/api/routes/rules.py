"""Alert rule endpoints."""

import logging

from fastapi import APIRouter, Depends

from src.api.dependencies import get_engine
from src.api.models import (
    ChangedResponse,
    ConditionModel,
    CreateRuleRequest,
    RuleResponse,
    TemplateResponse,
    TemplateRuleRequest,
    ToggleRuleRequest,
)
from src.notifications import RULE_TEMPLATES, NotificationEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/rules", tags=["Rules"])


@router.get("", response_model=list[RuleResponse])
async def list_rules(
    active_only: bool = False,
    engine: NotificationEngine = Depends(get_engine),
) -> list[RuleResponse]:
    return [RuleResponse.from_rule(r) for r in engine.list_rules(active_only=active_only)]


@router.post("", response_model=RuleResponse, status_code=201)
async def create_rule(
    request: CreateRuleRequest,
    engine: NotificationEngine = Depends(get_engine),
) -> RuleResponse:
    """Create a rule; a rule without conditions is rejected with 400."""
    rule = engine.add_rule(request.to_rule(created_at=engine.now()))
    return RuleResponse.from_rule(rule)


@router.get("/templates", response_model=list[TemplateResponse])
async def list_templates() -> list[TemplateResponse]:
    return [
        TemplateResponse(
            key=key,
            name=t["name"],
            description=t["description"],
            rule_type=t["rule_type"],
            conditions=[ConditionModel(type=kind, threshold=threshold) for kind, threshold in t["conditions"]],
            channels=t["channels"],
        )
        for key, t in RULE_TEMPLATES.items()
    ]


@router.post("/from-template", response_model=RuleResponse, status_code=201)
async def create_rule_from_template(
    request: TemplateRuleRequest,
    engine: NotificationEngine = Depends(get_engine),
) -> RuleResponse:
    rule = engine.create_rule_from_template(
        request.template,
        name=request.name,
        threshold=request.threshold,
        channels=request.channels,
        cooldown_seconds=request.cooldown_seconds,
    )
    return RuleResponse.from_rule(rule)


@router.get("/{rule_id}", response_model=RuleResponse)
async def get_rule(rule_id: str, engine: NotificationEngine = Depends(get_engine)) -> RuleResponse:
    return RuleResponse.from_rule(engine.get_rule(rule_id))


@router.post("/{rule_id}/toggle", response_model=RuleResponse)
async def toggle_rule(
    rule_id: str,
    request: ToggleRuleRequest,
    engine: NotificationEngine = Depends(get_engine),
) -> RuleResponse:
    active = request.active
    if active is None:
        active = not engine.get_rule(rule_id).active
    return RuleResponse.from_rule(engine.set_rule_active(rule_id, active))


@router.delete("/{rule_id}", response_model=ChangedResponse)
async def delete_rule(rule_id: str, engine: NotificationEngine = Depends(get_engine)) -> ChangedResponse:
    return ChangedResponse(changed=engine.remove_rule(rule_id))
