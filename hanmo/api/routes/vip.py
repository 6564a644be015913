from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query

from hanmo.api.deps import CurrentUser, SessionDep
from hanmo.core.config import settings
from hanmo.core.rbac import require_permission
from hanmo.models import (
    Message,
    Page,
    RedeemCodeStatus,
    RedeemRequest,
    User,
    UserVipStatusPublic,
    VipOrderCreate,
    VipOrderPublic,
    VipOrderReview,
    VipOrderStatus,
    VipPaymentSubmit,
    VipPlanCreate,
    VipPlanPublic,
    VipPlanUpdate,
    VipRedeemCodeGenerate,
    VipRedeemCodePublic,
    VipRedeemCodeUpdate,
    VipRedeemResult,
)
from hanmo.services import vip
from hanmo.utils.mail import generate_vip_activated_email, send_email
from hanmo.utils.pagination import PageDep

router = APIRouter(prefix="/vip", tags=["vip"])


# Plans
@router.get("/plans/public", response_model=list[VipPlanPublic])
def read_public_plans(session: SessionDep) -> Any:
    return [vip.plan_public(plan) for plan in vip.list_plans(session)]


@router.get(
    "/plans",
    dependencies=[Depends(require_permission("plan.read"))],
    response_model=list[VipPlanPublic],
)
def read_plans(session: SessionDep) -> Any:
    return [vip.plan_public(plan) for plan in vip.list_plans(session, active_only=False)]


@router.post(
    "/plans",
    dependencies=[Depends(require_permission("plan.create"))],
    response_model=VipPlanPublic,
)
def create_plan(
    session: SessionDep, current_user: CurrentUser, plan_in: VipPlanCreate
) -> Any:
    return vip.plan_public(vip.create_plan(session, plan_in, current_user.id))


@router.get(
    "/plans/{plan_id}",
    dependencies=[Depends(require_permission("plan.read"))],
    response_model=VipPlanPublic,
)
def read_plan(session: SessionDep, plan_id: int) -> Any:
    return vip.plan_public(vip.get_plan(session, plan_id))


@router.patch(
    "/plans/{plan_id}",
    dependencies=[Depends(require_permission("plan.update"))],
    response_model=VipPlanPublic,
)
def update_plan(
    session: SessionDep, current_user: CurrentUser, plan_id: int, plan_in: VipPlanUpdate
) -> Any:
    return vip.plan_public(vip.update_plan(session, plan_id, plan_in, current_user.id))


@router.delete(
    "/plans/{plan_id}", dependencies=[Depends(require_permission("plan.delete"))]
)
def delete_plan(session: SessionDep, plan_id: int) -> Message:
    vip.delete_plan(session, plan_id)
    return Message(message="VIP plan deleted successfully")


# Membership
@router.get("/status", response_model=UserVipStatusPublic)
def read_vip_status(session: SessionDep, current_user: CurrentUser) -> Any:
    return vip.get_status(session, current_user.id)


@router.post("/redeem", response_model=VipRedeemResult)
def redeem_code(session: SessionDep, current_user: CurrentUser, body: RedeemRequest) -> Any:
    return vip.redeem(session, current_user.id, body.code)


# Orders
@router.post("/orders", response_model=VipOrderPublic)
def create_order(
    session: SessionDep, current_user: CurrentUser, order_in: VipOrderCreate
) -> Any:
    return vip.create_order(session, current_user.id, order_in)


@router.get("/orders/me", response_model=Page[VipOrderPublic])
def read_my_orders(
    session: SessionDep,
    current_user: CurrentUser,
    params: PageDep,
    status: VipOrderStatus | None = None,
) -> Any:
    items, pagination = vip.list_orders(
        session, params, user_id=current_user.id, status=status
    )
    return Page(data=items, pagination=pagination)


@router.post("/orders/{order_id}/payment", response_model=VipOrderPublic)
def submit_payment(
    session: SessionDep,
    current_user: CurrentUser,
    order_id: int,
    payment: VipPaymentSubmit,
) -> Any:
    """
    Submit the payment transaction id; the order moves to in review.
    """
    return vip.submit_payment(session, current_user.id, order_id, payment)


@router.post("/orders/{order_id}/cancel", response_model=VipOrderPublic)
def cancel_order(session: SessionDep, current_user: CurrentUser, order_id: int) -> Any:
    return vip.cancel_order(session, current_user.id, order_id)


@router.get(
    "/orders",
    dependencies=[Depends(require_permission("order.read"))],
    response_model=Page[VipOrderPublic],
)
def read_orders(
    session: SessionDep, params: PageDep, status: VipOrderStatus | None = None
) -> Any:
    items, pagination = vip.list_orders(session, params, status=status)
    return Page(data=items, pagination=pagination)


@router.get(
    "/orders/{order_id}",
    dependencies=[Depends(require_permission("order.read"))],
    response_model=VipOrderPublic,
)
def read_order(session: SessionDep, order_id: int) -> Any:
    return vip.get_order(session, order_id)


@router.post(
    "/orders/{order_id}/approve",
    dependencies=[Depends(require_permission("order.update"))],
    response_model=VipOrderPublic,
)
def approve_order(
    session: SessionDep,
    current_user: CurrentUser,
    background_tasks: BackgroundTasks,
    order_id: int,
    review: VipOrderReview,
) -> Any:
    """
    Approve an order and extend the buyer's membership.
    """
    order = vip.approve_order(session, order_id, current_user.id, review)
    buyer = session.get(User, order.user_id)
    if settings.emails_enabled and buyer and order.expire_at:
        plan = vip.get_plan(session, order.plan_id)
        email_data = generate_vip_activated_email(
            email_to=buyer.email, plan_name=plan.name, expire_date=order.expire_at
        )
        background_tasks.add_task(
            send_email,
            email_to=buyer.email,
            subject=email_data.subject,
            html_content=email_data.html_content,
        )
    return order


@router.post(
    "/orders/{order_id}/reject",
    dependencies=[Depends(require_permission("order.update"))],
    response_model=VipOrderPublic,
)
def reject_order(
    session: SessionDep, current_user: CurrentUser, order_id: int, review: VipOrderReview
) -> Any:
    return vip.reject_order(session, order_id, current_user.id, review)


# Redeem code administration
@router.get(
    "/codes",
    dependencies=[Depends(require_permission("redeem.read"))],
    response_model=Page[VipRedeemCodePublic],
)
def read_codes(
    session: SessionDep,
    params: PageDep,
    search: str | None = Query(None, max_length=50),
    status: RedeemCodeStatus | None = None,
) -> Any:
    items, pagination = vip.list_codes(session, params, search=search, status=status)
    return Page(data=items, pagination=pagination)


@router.post(
    "/codes/generate",
    dependencies=[Depends(require_permission("redeem.create"))],
    response_model=list[VipRedeemCodePublic],
)
def generate_codes(
    session: SessionDep, current_user: CurrentUser, body: VipRedeemCodeGenerate
) -> Any:
    return vip.generate_codes(session, body, current_user.id)


@router.get(
    "/codes/{code_id}",
    dependencies=[Depends(require_permission("redeem.read"))],
    response_model=VipRedeemCodePublic,
)
def read_code(session: SessionDep, code_id: int) -> Any:
    return vip.get_code(session, code_id)


@router.patch(
    "/codes/{code_id}",
    dependencies=[Depends(require_permission("redeem.update"))],
    response_model=VipRedeemCodePublic,
)
def update_code(session: SessionDep, code_id: int, code_in: VipRedeemCodeUpdate) -> Any:
    return vip.update_code(session, code_id, code_in)


@router.delete(
    "/codes/{code_id}", dependencies=[Depends(require_permission("redeem.delete"))]
)
def delete_code(session: SessionDep, code_id: int) -> Message:
    vip.delete_code(session, code_id)
    return Message(message="Redeem code deleted successfully")
