from typing import Any

from fastapi import APIRouter, Depends, Query

from hanmo.api.deps import CurrentUser, SessionDep
from hanmo.core.rbac import require_permission
from hanmo.models import (
    CreditAdjust,
    CreditConsume,
    CreditRedeemCodeCreate,
    CreditRedeemCodeGenerate,
    CreditRedeemCodePublic,
    CreditRedeemCodeUpdate,
    CreditRedeemHistoryPublic,
    CreditRedeemResult,
    CreditTransactionPublic,
    Message,
    Page,
    RedeemCodeStatus,
    RedeemRequest,
    UserCreditsPublic,
)
from hanmo.services import credits
from hanmo.utils.pagination import PageDep

router = APIRouter(prefix="/credits", tags=["credits"])


@router.get("/me", response_model=UserCreditsPublic)
def read_my_credits(session: SessionDep, current_user: CurrentUser) -> Any:
    account = credits.get_or_create_account(session, current_user.id)
    session.commit()
    return account


@router.get("/me/transactions", response_model=Page[CreditTransactionPublic])
def read_my_transactions(
    session: SessionDep, current_user: CurrentUser, params: PageDep
) -> Any:
    items, pagination = credits.list_transactions(session, current_user.id, params)
    return Page(data=items, pagination=pagination)


@router.post("/consume", response_model=CreditTransactionPublic)
def consume_credits(
    session: SessionDep, current_user: CurrentUser, body: CreditConsume
) -> Any:
    """
    Spend credits; 402 when the balance is too low.
    """
    return credits.consume(
        session, current_user.id, body.amount, description=body.description
    )


@router.post("/redeem", response_model=CreditRedeemResult)
def redeem_code(session: SessionDep, current_user: CurrentUser, body: RedeemRequest) -> Any:
    return credits.redeem(session, current_user.id, body.code)


@router.get("/redeem/history", response_model=Page[CreditRedeemHistoryPublic])
def read_my_redeem_history(
    session: SessionDep, current_user: CurrentUser, params: PageDep
) -> Any:
    items, pagination = credits.list_redeem_history(session, current_user.id, params)
    return Page(data=items, pagination=pagination)


@router.post(
    "/adjust",
    dependencies=[Depends(require_permission("credits.update"))],
    response_model=CreditTransactionPublic,
)
def adjust_credits(session: SessionDep, current_user: CurrentUser, body: CreditAdjust) -> Any:
    """
    Add or deduct credits on behalf of a user.
    """
    return credits.admin_adjust(session, body, current_user.id)


# Redeem code administration
@router.get(
    "/codes",
    dependencies=[Depends(require_permission("credits-redeem.read"))],
    response_model=Page[CreditRedeemCodePublic],
)
def read_codes(
    session: SessionDep,
    params: PageDep,
    search: str | None = Query(None, max_length=50),
    status: RedeemCodeStatus | None = None,
) -> Any:
    items, pagination = credits.list_codes(session, params, search=search, status=status)
    return Page(data=items, pagination=pagination)


@router.post(
    "/codes",
    dependencies=[Depends(require_permission("credits-redeem.create"))],
    response_model=CreditRedeemCodePublic,
)
def create_code(
    session: SessionDep, current_user: CurrentUser, code_in: CreditRedeemCodeCreate
) -> Any:
    return credits.create_code(session, code_in, current_user.id)


@router.post(
    "/codes/generate",
    dependencies=[Depends(require_permission("credits-redeem.create"))],
    response_model=list[CreditRedeemCodePublic],
)
def generate_codes(
    session: SessionDep, current_user: CurrentUser, body: CreditRedeemCodeGenerate
) -> Any:
    return credits.generate_codes(session, body, current_user.id)


@router.get(
    "/codes/{code_id}",
    dependencies=[Depends(require_permission("credits-redeem.read"))],
    response_model=CreditRedeemCodePublic,
)
def read_code(session: SessionDep, code_id: int) -> Any:
    return credits.get_code(session, code_id)


@router.patch(
    "/codes/{code_id}",
    dependencies=[Depends(require_permission("credits-redeem.update"))],
    response_model=CreditRedeemCodePublic,
)
def update_code(
    session: SessionDep, code_id: int, code_in: CreditRedeemCodeUpdate
) -> Any:
    return credits.update_code(session, code_id, code_in)


@router.delete(
    "/codes/{code_id}",
    dependencies=[Depends(require_permission("credits-redeem.delete"))],
)
def delete_code(session: SessionDep, code_id: int) -> Message:
    credits.delete_code(session, code_id)
    return Message(message="Redeem code deleted successfully")
