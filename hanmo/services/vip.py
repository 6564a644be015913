"""
VIP plans, orders, membership status and VIP redeem codes.

Orders are paid out of band: the user submits a transaction id and an
administrator approves or rejects the order.
"""

import random
import time
import uuid

from sqlmodel import Session, col, select

from hanmo.core.exceptions import (
    BusinessRuleViolation,
    EntityNotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from hanmo.core.observability import REDEEM_ATTEMPTS, get_logger
from hanmo.models import (
    RedeemCodeStatus,
    RedeemResultStatus,
    UserVipStatus,
    UserVipStatusPublic,
    VipCodeType,
    VipOrder,
    VipOrderCreate,
    VipOrderReview,
    VipOrderStatus,
    VipPaymentSubmit,
    VipPlan,
    VipPlanCreate,
    VipPlanPublic,
    VipPlanUpdate,
    VipRedeemCode,
    VipRedeemCodeGenerate,
    VipRedeemCodeUpdate,
    VipRedeemHistory,
    VipRedeemResult,
    utcnow,
)
from hanmo.services import redeem_codes
from hanmo.utils import vip as vip_utils
from hanmo.utils.pagination import PageParams, fetch_page

logger = get_logger(__name__)

REVIEWABLE_STATUSES = (VipOrderStatus.PENDING, VipOrderStatus.IN_REVIEW)


def plan_public(plan: VipPlan) -> VipPlanPublic:
    return VipPlanPublic.model_validate(
        plan,
        update={
            "discount": vip_utils.calculate_discount(plan.price, plan.original_price),
            "daily_price": vip_utils.daily_price(plan.price, plan.duration),
            "duration_label": vip_utils.format_duration(plan.duration),
        },
    )


def list_plans(session: Session, *, active_only: bool = True) -> list[VipPlan]:
    statement = select(VipPlan)
    if active_only:
        statement = statement.where(col(VipPlan.status).is_(True))
    statement = statement.order_by(col(VipPlan.sort_order), col(VipPlan.id))
    return list(session.exec(statement).all())


def get_plan(session: Session, plan_id: int) -> VipPlan:
    plan = session.get(VipPlan, plan_id)
    if not plan:
        raise EntityNotFoundError("VIP plan", plan_id)
    return plan


def create_plan(session: Session, plan_in: VipPlanCreate, operator_id: uuid.UUID) -> VipPlan:
    plan = VipPlan.model_validate(plan_in, update={"operator_id": operator_id})
    session.add(plan)
    session.commit()
    session.refresh(plan)
    return plan


def update_plan(
    session: Session, plan_id: int, plan_in: VipPlanUpdate, operator_id: uuid.UUID
) -> VipPlan:
    plan = get_plan(session, plan_id)
    plan.sqlmodel_update(plan_in.model_dump(exclude_unset=True), update={"operator_id": operator_id})
    session.add(plan)
    session.commit()
    session.refresh(plan)
    return plan


def delete_plan(session: Session, plan_id: int) -> None:
    plan = get_plan(session, plan_id)
    in_use = session.exec(select(VipOrder.id).where(VipOrder.plan_id == plan_id)).first()
    if in_use:
        raise BusinessRuleViolation(
            "Plans with orders cannot be deleted, disable them instead",
            {"plan_id": plan_id},
        )
    session.delete(plan)
    session.commit()


def generate_order_no() -> str:
    return f"VIP{int(time.time() * 1000)}{random.randint(1000, 9999)}"


def create_order(
    session: Session, user_id: uuid.UUID, order_in: VipOrderCreate
) -> VipOrder:
    plan = get_plan(session, order_in.plan_id)
    if not plan.status:
        raise BusinessRuleViolation("This plan is not available", {"plan_id": plan.id})
    order = VipOrder(
        order_no=generate_order_no(),
        user_id=user_id,
        plan_id=plan.id,
        amount=plan.price,
        payment_method=order_in.payment_method,
        auto_renew=order_in.auto_renew,
    )
    session.add(order)
    session.commit()
    session.refresh(order)
    logger.info("VIP order created", user_id=str(user_id), order_no=order.order_no)
    return order


def get_order(session: Session, order_id: int) -> VipOrder:
    order = session.get(VipOrder, order_id)
    if not order:
        raise EntityNotFoundError("VIP order", order_id)
    return order


def _own_order(session: Session, user_id: uuid.UUID, order_id: int) -> VipOrder:
    order = get_order(session, order_id)
    if order.user_id != user_id:
        raise PermissionDeniedError("This order belongs to another user")
    return order


def submit_payment(
    session: Session, user_id: uuid.UUID, order_id: int, payment: VipPaymentSubmit
) -> VipOrder:
    order = _own_order(session, user_id, order_id)
    if order.status != VipOrderStatus.PENDING:
        raise BusinessRuleViolation(
            "Payment can only be submitted for pending orders",
            {"status": order.status.value},
        )
    order.user_submitted_transaction_id = payment.transaction_id
    if payment.payment_method:
        order.payment_method = payment.payment_method
    order.status = VipOrderStatus.IN_REVIEW
    session.add(order)
    session.commit()
    session.refresh(order)
    return order


def cancel_order(session: Session, user_id: uuid.UUID, order_id: int) -> VipOrder:
    order = _own_order(session, user_id, order_id)
    if order.status != VipOrderStatus.PENDING:
        raise BusinessRuleViolation(
            "Only pending orders can be cancelled", {"status": order.status.value}
        )
    order.status = VipOrderStatus.CANCELLED
    session.add(order)
    session.commit()
    session.refresh(order)
    return order


def list_orders(
    session: Session,
    params: PageParams,
    *,
    user_id: uuid.UUID | None = None,
    status: VipOrderStatus | None = None,
):
    statement = select(VipOrder)
    if user_id:
        statement = statement.where(VipOrder.user_id == user_id)
    if status:
        statement = statement.where(VipOrder.status == status)
    statement = statement.order_by(col(VipOrder.created_at).desc(), col(VipOrder.id).desc())
    return fetch_page(session, statement, params)


def extend_vip(
    session: Session,
    user_id: uuid.UUID,
    *,
    months: int = 0,
    days: int = 0,
    auto_renew: bool | None = None,
) -> UserVipStatus:
    """Extend membership; flushes only."""
    now = utcnow()
    status = session.exec(
        select(UserVipStatus).where(UserVipStatus.user_id == user_id).with_for_update()
    ).first()
    if status is None:
        status = UserVipStatus(user_id=user_id)
    status.vip_expire_date = vip_utils.extend_expiry(
        status.vip_expire_date, months=months, days=days, now=now
    )
    status.is_vip = True
    status.last_renewal_date = now
    if auto_renew is not None:
        status.auto_renew = auto_renew
    session.add(status)
    session.flush()
    return status


def approve_order(
    session: Session, order_id: int, reviewer_id: uuid.UUID, review: VipOrderReview
) -> VipOrder:
    order = get_order(session, order_id)
    if order.status not in REVIEWABLE_STATUSES:
        raise BusinessRuleViolation(
            "Only pending or in review orders can be approved",
            {"status": order.status.value},
        )
    plan = get_plan(session, order.plan_id)
    status = extend_vip(
        session, order.user_id, months=plan.duration, auto_renew=order.auto_renew
    )
    now = utcnow()
    order.status = VipOrderStatus.COMPLETED
    order.paid_at = now
    order.expire_at = status.vip_expire_date
    order.reviewed_by = reviewer_id
    order.reviewed_at = now
    if review.admin_notes is not None:
        order.admin_notes = review.admin_notes
    session.add(order)
    session.commit()
    session.refresh(order)
    logger.info(
        "VIP order approved",
        order_no=order.order_no,
        user_id=str(order.user_id),
        expire_at=order.expire_at.isoformat() if order.expire_at else None,
    )
    return order


def reject_order(
    session: Session, order_id: int, reviewer_id: uuid.UUID, review: VipOrderReview
) -> VipOrder:
    order = get_order(session, order_id)
    if order.status not in REVIEWABLE_STATUSES:
        raise BusinessRuleViolation(
            "Only pending or in review orders can be rejected",
            {"status": order.status.value},
        )
    order.status = VipOrderStatus.REJECTED
    order.admin_notes = review.admin_notes
    order.reviewed_by = reviewer_id
    order.reviewed_at = utcnow()
    session.add(order)
    session.commit()
    session.refresh(order)
    return order


def get_status(session: Session, user_id: uuid.UUID) -> UserVipStatusPublic:
    status = session.exec(
        select(UserVipStatus).where(UserVipStatus.user_id == user_id)
    ).first()
    if status is None:
        return UserVipStatusPublic(
            is_vip=False,
            vip_expire_date=None,
            remaining_days=0,
            is_expiring_soon=False,
            auto_renew=False,
        )
    if status.is_vip and vip_utils.is_expired(status.vip_expire_date):
        status.is_vip = False
        session.add(status)
        session.commit()
        session.refresh(status)
    return UserVipStatusPublic(
        is_vip=status.is_vip,
        vip_expire_date=status.vip_expire_date,
        remaining_days=vip_utils.calculate_remaining_days(status.vip_expire_date),
        is_expiring_soon=vip_utils.is_expiring_soon(status.vip_expire_date),
        auto_renew=status.auto_renew,
    )


def _code_grant(session: Session, code: VipRedeemCode) -> tuple[int, int]:
    """(months, days) granted by a code."""
    if code.type == VipCodeType.PLAN:
        if code.plan_id is None:
            raise BusinessRuleViolation("Redeem code is not linked to a plan")
        return get_plan(session, code.plan_id).duration, 0
    if code.type == VipCodeType.DURATION:
        return code.duration or 0, 0
    return 0, code.days or 0


def _validate_code_definition(session: Session, code_in: VipRedeemCodeGenerate) -> None:
    if code_in.type == VipCodeType.PLAN:
        if code_in.plan_id is None:
            raise ValidationError("plan_id", "Plan codes require a plan")
        get_plan(session, code_in.plan_id)
    elif code_in.type == VipCodeType.DURATION and not code_in.duration:
        raise ValidationError("duration", "Duration codes require a number of months")
    elif code_in.type == VipCodeType.DAYS and not code_in.days:
        raise ValidationError("days", "Day codes require a number of days")


def redeem(session: Session, user_id: uuid.UUID, code: str) -> VipRedeemResult:
    normalized = redeem_codes.normalize_code(code)
    redeem_code = session.exec(
        select(VipRedeemCode).where(VipRedeemCode.code == normalized).with_for_update()
    ).first()
    if not redeem_code:
        REDEEM_ATTEMPTS.labels(kind="vip", status="not_found").inc()
        raise EntityNotFoundError("Redeem code", normalized)

    failure = redeem_codes.code_failure(
        session, redeem_code, VipRedeemHistory, user_id, utcnow()
    )
    if failure:
        session.add(
            VipRedeemHistory(
                code_id=redeem_code.id,
                user_id=user_id,
                status=RedeemResultStatus.FAILED,
                message=failure,
            )
        )
        session.commit()
        REDEEM_ATTEMPTS.labels(kind="vip", status="failed").inc()
        raise BusinessRuleViolation(failure, {"code": normalized})

    months, days = _code_grant(session, redeem_code)
    status = extend_vip(session, user_id, months=months, days=days)
    redeem_codes.consume_use(session, redeem_code)
    session.add(
        VipRedeemHistory(
            code_id=redeem_code.id,
            user_id=user_id,
            status=RedeemResultStatus.SUCCESS,
            message="Redeemed",
            snapshot={
                "code": redeem_code.code,
                "type": redeem_code.type.value,
                "plan_id": redeem_code.plan_id,
                "months": months,
                "days": days,
                "vip_expire_date": status.vip_expire_date.isoformat(),
            },
        )
    )
    session.commit()
    session.refresh(status)
    REDEEM_ATTEMPTS.labels(kind="vip", status="success").inc()
    logger.info(
        "VIP code redeemed",
        user_id=str(user_id),
        code_id=redeem_code.id,
        months=months,
        days=days,
    )
    return VipRedeemResult(
        message="VIP membership extended",
        vip_expire_date=status.vip_expire_date,
        added_months=months,
        added_days=days,
    )


def list_codes(
    session: Session,
    params: PageParams,
    *,
    search: str | None = None,
    status: RedeemCodeStatus | None = None,
):
    statement = select(VipRedeemCode)
    if search:
        statement = statement.where(col(VipRedeemCode.code).ilike(f"%{search.upper()}%"))
    if status:
        statement = statement.where(VipRedeemCode.status == status)
    statement = statement.order_by(col(VipRedeemCode.created_at).desc(), col(VipRedeemCode.id).desc())
    return fetch_page(session, statement, params)


def generate_codes(
    session: Session, generate: VipRedeemCodeGenerate, created_by: uuid.UUID
) -> list[VipRedeemCode]:
    _validate_code_definition(session, generate)
    codes = []
    for _ in range(generate.count):
        code = VipRedeemCode(
            code=redeem_codes.new_unique_code(session, VipRedeemCode, generate.prefix),
            type=generate.type,
            plan_id=generate.plan_id,
            duration=generate.duration,
            days=generate.days,
            max_uses=generate.max_uses,
            expires_at=generate.expires_at,
            created_by=created_by,
        )
        session.add(code)
        session.flush()
        codes.append(code)
    session.commit()
    for code in codes:
        session.refresh(code)
    logger.info("VIP codes generated", count=len(codes), created_by=str(created_by))
    return codes


def get_code(session: Session, code_id: int) -> VipRedeemCode:
    code = session.get(VipRedeemCode, code_id)
    if not code:
        raise EntityNotFoundError("Redeem code", code_id)
    return code


def update_code(session: Session, code_id: int, code_in: VipRedeemCodeUpdate) -> VipRedeemCode:
    code = get_code(session, code_id)
    code.sqlmodel_update(code_in.model_dump(exclude_unset=True))
    session.add(code)
    session.commit()
    session.refresh(code)
    return code


def delete_code(session: Session, code_id: int) -> None:
    code = get_code(session, code_id)
    if redeem_codes.has_history(session, VipRedeemHistory, code.id):
        raise BusinessRuleViolation(
            "Codes with redemption history cannot be deleted, disable them instead",
            {"code": code.code},
        )
    session.delete(code)
    session.commit()
