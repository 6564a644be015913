from typing import Any

from fastapi import APIRouter, Depends

from hanmo.api.deps import CurrentUser, SessionDep
from hanmo.core.rbac import require_permission
from hanmo.models import (
    CheckInResult,
    CheckInRuleCreate,
    CheckInRulePublic,
    CheckInRuleUpdate,
    CheckInStatus,
    Message,
    Page,
    PointExchangeHistoryPublic,
    PointExchangeRateCreate,
    PointExchangeRatePublic,
    PointExchangeRateUpdate,
    PointExchangeRequest,
    PointExchangeResult,
    PointTransactionPublic,
    UserCheckInPublic,
    UserPointsPublic,
)
from hanmo.services import points
from hanmo.utils.pagination import PageDep

router = APIRouter(prefix="/points", tags=["points"])


@router.get("/me", response_model=UserPointsPublic)
def read_my_points(session: SessionDep, current_user: CurrentUser) -> Any:
    account = points.get_or_create_points(session, current_user.id)
    session.commit()
    return account


@router.get("/me/transactions", response_model=Page[PointTransactionPublic])
def read_my_transactions(
    session: SessionDep, current_user: CurrentUser, params: PageDep
) -> Any:
    items, pagination = points.list_transactions(session, current_user.id, params)
    return Page(data=items, pagination=pagination)


@router.post("/check-in", response_model=CheckInResult)
def check_in(session: SessionDep, current_user: CurrentUser) -> Any:
    """
    Daily check-in. A second call on the same day is rejected.
    """
    return points.check_in(session, current_user.id)


@router.get("/check-in/status", response_model=CheckInStatus)
def read_check_in_status(session: SessionDep, current_user: CurrentUser) -> Any:
    return points.get_check_in_status(session, current_user.id)


@router.get("/check-in/history", response_model=Page[UserCheckInPublic])
def read_check_in_history(
    session: SessionDep, current_user: CurrentUser, params: PageDep
) -> Any:
    items, pagination = points.list_check_ins(session, current_user.id, params)
    return Page(data=items, pagination=pagination)


@router.post("/exchange", response_model=PointExchangeResult)
def exchange_points(
    session: SessionDep, current_user: CurrentUser, body: PointExchangeRequest
) -> Any:
    return points.exchange(session, current_user.id, body)


@router.get("/exchange/history", response_model=Page[PointExchangeHistoryPublic])
def read_exchange_history(
    session: SessionDep, current_user: CurrentUser, params: PageDep
) -> Any:
    items, pagination = points.list_exchange_history(session, current_user.id, params)
    return Page(data=items, pagination=pagination)


@router.get("/check-in/rules", response_model=list[CheckInRulePublic])
def read_active_rules(session: SessionDep, current_user: CurrentUser) -> Any:
    return points.list_rules(session, active_only=True)


@router.get("/exchange/rates", response_model=list[PointExchangeRatePublic])
def read_active_rates(session: SessionDep, current_user: CurrentUser) -> Any:
    return points.list_rates(session, active_only=True)


# Check-in rule administration
@router.get(
    "/rules",
    dependencies=[Depends(require_permission("checkin-rule.read"))],
    response_model=list[CheckInRulePublic],
)
def read_rules(session: SessionDep) -> Any:
    return points.list_rules(session)


@router.post(
    "/rules",
    dependencies=[Depends(require_permission("checkin-rule.create"))],
    response_model=CheckInRulePublic,
)
def create_rule(session: SessionDep, rule_in: CheckInRuleCreate) -> Any:
    return points.create_rule(session, rule_in)


@router.patch(
    "/rules/{rule_id}",
    dependencies=[Depends(require_permission("checkin-rule.update"))],
    response_model=CheckInRulePublic,
)
def update_rule(session: SessionDep, rule_id: int, rule_in: CheckInRuleUpdate) -> Any:
    return points.update_rule(session, rule_id, rule_in)


@router.delete(
    "/rules/{rule_id}",
    dependencies=[Depends(require_permission("checkin-rule.delete"))],
)
def delete_rule(session: SessionDep, rule_id: int) -> Message:
    points.delete_rule(session, rule_id)
    return Message(message="Check-in rule deleted successfully")


# Exchange rate administration
@router.get(
    "/rates",
    dependencies=[Depends(require_permission("exchange-rate.read"))],
    response_model=list[PointExchangeRatePublic],
)
def read_rates(session: SessionDep) -> Any:
    return points.list_rates(session)


@router.post(
    "/rates",
    dependencies=[Depends(require_permission("exchange-rate.create"))],
    response_model=PointExchangeRatePublic,
)
def create_rate(session: SessionDep, rate_in: PointExchangeRateCreate) -> Any:
    return points.create_rate(session, rate_in)


@router.patch(
    "/rates/{rate_id}",
    dependencies=[Depends(require_permission("exchange-rate.update"))],
    response_model=PointExchangeRatePublic,
)
def update_rate(
    session: SessionDep, rate_id: int, rate_in: PointExchangeRateUpdate
) -> Any:
    return points.update_rate(session, rate_id, rate_in)


@router.delete(
    "/rates/{rate_id}",
    dependencies=[Depends(require_permission("exchange-rate.delete"))],
)
def delete_rate(session: SessionDep, rate_id: int) -> Message:
    points.delete_rate(session, rate_id)
    return Message(message="Exchange rate deleted successfully")
