"""
Point balances, daily check-in and the point-to-credit exchange.
"""

import math
import uuid
from datetime import date, timedelta

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from hanmo.core.config import settings
from hanmo.core.exceptions import (
    BusinessRuleViolation,
    EntityNotFoundError,
    InsufficientBalanceError,
)
from hanmo.core.observability import POINT_OPERATIONS, get_logger
from hanmo.models import (
    CheckInResult,
    CheckInRule,
    CheckInRuleCreate,
    CheckInRuleUpdate,
    CheckInStatus,
    CreditTransactionType,
    PointExchangeHistory,
    PointExchangeRate,
    PointExchangeRateCreate,
    PointExchangeRateUpdate,
    PointExchangeRequest,
    PointExchangeResult,
    PointTransaction,
    PointTransactionType,
    TaxonomyStatus,
    UserCheckIn,
    UserCheckInPublic,
    UserPoints,
    utcnow,
)
from hanmo.services import credits as credit_service
from hanmo.utils.pagination import PageParams, fetch_page

logger = get_logger(__name__)

# (minimum streak, points), used when no check-in rule is active
DEFAULT_REWARD_TIERS = [(30, 100), (14, 50), (7, 30), (3, 20)]
DEFAULT_REWARD = 10
RECENT_CHECK_INS = 7


def get_or_create_points(session: Session, user_id: uuid.UUID) -> UserPoints:
    points = session.exec(
        select(UserPoints).where(UserPoints.user_id == user_id).with_for_update()
    ).first()
    if points is None:
        points = UserPoints(user_id=user_id)
        session.add(points)
        session.flush()
    return points


def apply_change(
    session: Session,
    user_id: uuid.UUID,
    amount: int,
    source: str,
    *,
    description: str | None = None,
    related_id: int | None = None,
    related_type: str | None = None,
    operator_id: uuid.UUID | None = None,
) -> PointTransaction:
    account = get_or_create_points(session, user_id)
    before = account.balance
    after = before + amount
    if after < 0:
        raise InsufficientBalanceError("points", before, -amount)

    account.balance = after
    if amount >= 0:
        account.total_earned += amount
    else:
        account.total_spent += -amount
    session.add(account)

    transaction = PointTransaction(
        user_id=user_id,
        type=PointTransactionType.EARN if amount >= 0 else PointTransactionType.SPEND,
        amount=amount,
        balance_before=before,
        balance_after=after,
        source=source,
        related_id=related_id,
        related_type=related_type,
        description=description,
        operator_id=operator_id,
    )
    session.add(transaction)
    session.flush()
    POINT_OPERATIONS.labels(operation=transaction.type.value, source=source).inc()
    return transaction


def add_points(
    session: Session,
    user_id: uuid.UUID,
    amount: int,
    source: str,
    description: str | None = None,
) -> PointTransaction:
    if amount <= 0:
        raise BusinessRuleViolation("Points to add must be positive")
    transaction = apply_change(session, user_id, amount, source, description=description)
    session.commit()
    session.refresh(transaction)
    return transaction


def spend_points(
    session: Session,
    user_id: uuid.UUID,
    amount: int,
    source: str,
    description: str | None = None,
) -> PointTransaction:
    if amount <= 0:
        raise BusinessRuleViolation("Points to spend must be positive")
    transaction = apply_change(session, user_id, -amount, source, description=description)
    session.commit()
    session.refresh(transaction)
    return transaction


def list_transactions(session: Session, user_id: uuid.UUID, params: PageParams):
    statement = (
        select(PointTransaction)
        .where(PointTransaction.user_id == user_id)
        .order_by(col(PointTransaction.created_at).desc(), col(PointTransaction.id).desc())
    )
    return fetch_page(session, statement, params)


def check_in_reward(session: Session, consecutive_days: int) -> int:
    """Points of the best active rule the streak has reached, else the built-in tiers."""
    rules = session.exec(
        select(CheckInRule).where(CheckInRule.status == TaxonomyStatus.ACTIVE)
    ).all()
    if rules:
        reached = [r for r in rules if r.consecutive_days <= consecutive_days]
        if not reached:
            return 0
        return max(reached, key=lambda r: r.consecutive_days).points
    for min_days, points in DEFAULT_REWARD_TIERS:
        if consecutive_days >= min_days:
            return points
    return DEFAULT_REWARD


def _record_for(session: Session, user_id: uuid.UUID, day: date) -> UserCheckIn | None:
    return session.exec(
        select(UserCheckIn).where(
            UserCheckIn.user_id == user_id, UserCheckIn.check_in_date == day
        )
    ).first()


def check_in(session: Session, user_id: uuid.UUID) -> CheckInResult:
    today = utcnow().date()
    if _record_for(session, user_id, today):
        raise BusinessRuleViolation("You have already checked in today")

    yesterday = _record_for(session, user_id, today - timedelta(days=1))
    consecutive_days = yesterday.consecutive_days + 1 if yesterday else 1
    points = check_in_reward(session, consecutive_days)

    record = UserCheckIn(
        user_id=user_id,
        check_in_date=today,
        points=points,
        consecutive_days=consecutive_days,
    )
    session.add(record)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise BusinessRuleViolation("You have already checked in today")

    account = get_or_create_points(session, user_id)
    balance = account.balance
    if points > 0:
        transaction = apply_change(
            session,
            user_id,
            points,
            "check_in",
            description=f"Daily check-in, day {consecutive_days}",
            related_id=record.id,
            related_type="user_check_in",
        )
        balance = transaction.balance_after
    session.commit()
    logger.info(
        "User checked in",
        user_id=str(user_id),
        consecutive_days=consecutive_days,
        points=points,
    )
    return CheckInResult(
        message="Checked in successfully",
        points=points,
        consecutive_days=consecutive_days,
        balance=balance,
    )


def current_streak(dates: list[date], today: date) -> int:
    """Length of the run of consecutive dates ending today or yesterday."""
    if not dates or dates[0] < today - timedelta(days=1):
        return 0
    streak = 1
    for previous, current in zip(dates, dates[1:]):
        if previous - current != timedelta(days=1):
            break
        streak += 1
    return streak


def get_check_in_status(session: Session, user_id: uuid.UUID) -> CheckInStatus:
    today = utcnow().date()
    records = session.exec(
        select(UserCheckIn)
        .where(UserCheckIn.user_id == user_id)
        .order_by(col(UserCheckIn.check_in_date).desc())
        .limit(400)
    ).all()
    today_record = records[0] if records and records[0].check_in_date == today else None
    month_start = today.replace(day=1)
    month_days = session.exec(
        select(func.count())
        .select_from(UserCheckIn)
        .where(
            UserCheckIn.user_id == user_id,
            col(UserCheckIn.check_in_date) >= month_start,
        )
    ).one()
    return CheckInStatus(
        has_checked_in_today=today_record is not None,
        today_check_in=UserCheckInPublic.model_validate(today_record)
        if today_record
        else None,
        consecutive_days=current_streak([r.check_in_date for r in records], today),
        month_check_in_days=month_days,
        recent_check_ins=[
            UserCheckInPublic.model_validate(r) for r in records[:RECENT_CHECK_INS]
        ],
    )


def list_check_ins(session: Session, user_id: uuid.UUID, params: PageParams):
    statement = (
        select(UserCheckIn)
        .where(UserCheckIn.user_id == user_id)
        .order_by(col(UserCheckIn.check_in_date).desc())
    )
    return fetch_page(session, statement, params)


def exchange(
    session: Session, user_id: uuid.UUID, request: PointExchangeRequest
) -> PointExchangeResult:
    if request.rate_id is not None:
        rate = session.get(PointExchangeRate, request.rate_id)
        if not rate or rate.status != TaxonomyStatus.ACTIVE:
            raise EntityNotFoundError("Exchange rate", request.rate_id)
        points_needed = math.ceil(
            request.credits * rate.points_required / rate.credits_received
        )
    else:
        points_needed = request.credits * settings.POINTS_PER_CREDIT
    points_per_credit = points_needed // request.credits

    point_tx = apply_change(
        session,
        user_id,
        -points_needed,
        "exchange",
        description=f"Exchanged for {request.credits} credits",
    )
    history = PointExchangeHistory(
        user_id=user_id,
        points_spent=points_needed,
        credits_received=request.credits,
        exchange_rate=points_per_credit,
    )
    session.add(history)
    session.flush()
    credit_tx = credit_service.apply_change(
        session,
        user_id,
        request.credits,
        CreditTransactionType.EXCHANGE,
        description=f"Exchanged {points_needed} points",
        related_id=history.id,
        related_type="point_exchange",
    )
    session.commit()
    logger.info(
        "Points exchanged",
        user_id=str(user_id),
        points=points_needed,
        credits=request.credits,
    )
    return PointExchangeResult(
        message="Exchanged successfully",
        points_spent=points_needed,
        credits_received=request.credits,
        points_balance=point_tx.balance_after,
        credits_balance=credit_tx.balance_after,
    )


def list_exchange_history(session: Session, user_id: uuid.UUID, params: PageParams):
    statement = (
        select(PointExchangeHistory)
        .where(PointExchangeHistory.user_id == user_id)
        .order_by(col(PointExchangeHistory.created_at).desc(), col(PointExchangeHistory.id).desc())
    )
    return fetch_page(session, statement, params)


def list_rules(session: Session, *, active_only: bool = False) -> list[CheckInRule]:
    statement = select(CheckInRule)
    if active_only:
        statement = statement.where(CheckInRule.status == TaxonomyStatus.ACTIVE)
    statement = statement.order_by(col(CheckInRule.consecutive_days), col(CheckInRule.sort_order))
    return list(session.exec(statement).all())


def create_rule(session: Session, rule_in: CheckInRuleCreate) -> CheckInRule:
    rule = CheckInRule.model_validate(rule_in)
    session.add(rule)
    session.commit()
    session.refresh(rule)
    return rule


def update_rule(session: Session, rule_id: int, rule_in: CheckInRuleUpdate) -> CheckInRule:
    rule = session.get(CheckInRule, rule_id)
    if not rule:
        raise EntityNotFoundError("Check-in rule", rule_id)
    rule.sqlmodel_update(rule_in.model_dump(exclude_unset=True))
    session.add(rule)
    session.commit()
    session.refresh(rule)
    return rule


def delete_rule(session: Session, rule_id: int) -> None:
    rule = session.get(CheckInRule, rule_id)
    if not rule:
        raise EntityNotFoundError("Check-in rule", rule_id)
    session.delete(rule)
    session.commit()


def list_rates(session: Session, *, active_only: bool = False) -> list[PointExchangeRate]:
    statement = select(PointExchangeRate)
    if active_only:
        statement = statement.where(PointExchangeRate.status == TaxonomyStatus.ACTIVE)
    statement = statement.order_by(col(PointExchangeRate.sort_order), col(PointExchangeRate.id))
    return list(session.exec(statement).all())


def create_rate(session: Session, rate_in: PointExchangeRateCreate) -> PointExchangeRate:
    rate = PointExchangeRate.model_validate(rate_in)
    session.add(rate)
    session.commit()
    session.refresh(rate)
    return rate


def update_rate(
    session: Session, rate_id: int, rate_in: PointExchangeRateUpdate
) -> PointExchangeRate:
    rate = session.get(PointExchangeRate, rate_id)
    if not rate:
        raise EntityNotFoundError("Exchange rate", rate_id)
    rate.sqlmodel_update(rate_in.model_dump(exclude_unset=True))
    session.add(rate)
    session.commit()
    session.refresh(rate)
    return rate


def delete_rate(session: Session, rate_id: int) -> None:
    rate = session.get(PointExchangeRate, rate_id)
    if not rate:
        raise EntityNotFoundError("Exchange rate", rate_id)
    session.delete(rate)
    session.commit()
