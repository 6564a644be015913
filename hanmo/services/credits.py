"""
Credit balances, the credit ledger and credit redeem codes.

``apply_change`` is the single place a balance moves; it writes the ledger
row alongside and only flushes, so callers can combine it with other
changes in one transaction.
"""

import uuid

from sqlmodel import Session, col, select

from hanmo.core.exceptions import (
    BusinessRuleViolation,
    EntityAlreadyExistsError,
    EntityNotFoundError,
    InsufficientBalanceError,
)
from hanmo.core.observability import CREDIT_OPERATIONS, REDEEM_ATTEMPTS, get_logger
from hanmo.models import (
    CreditAdjust,
    CreditRedeemCode,
    CreditRedeemCodeCreate,
    CreditRedeemCodeGenerate,
    CreditRedeemCodeUpdate,
    CreditRedeemHistory,
    CreditRedeemResult,
    CreditTransaction,
    CreditTransactionType,
    RedeemCodeStatus,
    RedeemResultStatus,
    UserCredits,
    utcnow,
)
from hanmo.services import redeem_codes
from hanmo.utils.pagination import PageParams, fetch_page

logger = get_logger(__name__)


def get_or_create_account(session: Session, user_id: uuid.UUID) -> UserCredits:
    account = session.exec(
        select(UserCredits).where(UserCredits.user_id == user_id).with_for_update()
    ).first()
    if account is None:
        account = UserCredits(user_id=user_id)
        session.add(account)
        session.flush()
    return account


def apply_change(
    session: Session,
    user_id: uuid.UUID,
    amount: int,
    type: CreditTransactionType,
    *,
    description: str | None = None,
    related_id: int | None = None,
    related_type: str | None = None,
    operator_id: uuid.UUID | None = None,
) -> CreditTransaction:
    """Move the balance by a signed ``amount``; the balance never goes negative."""
    account = get_or_create_account(session, user_id)
    before = account.balance
    after = before + amount
    if after < 0:
        CREDIT_OPERATIONS.labels(operation=type.value, status="insufficient").inc()
        raise InsufficientBalanceError("credits", before, -amount)

    account.balance = after
    if amount > 0:
        account.total_recharged += amount
    else:
        account.total_consumed += -amount
    session.add(account)

    transaction = CreditTransaction(
        user_id=user_id,
        type=type,
        amount=amount,
        balance_before=before,
        balance_after=after,
        related_id=related_id,
        related_type=related_type,
        description=description,
        operator_id=operator_id,
    )
    session.add(transaction)
    session.flush()
    CREDIT_OPERATIONS.labels(operation=type.value, status="success").inc()
    return transaction


def recharge(
    session: Session,
    user_id: uuid.UUID,
    amount: int,
    *,
    type: CreditTransactionType = CreditTransactionType.RECHARGE,
    description: str | None = None,
    related_id: int | None = None,
    related_type: str | None = None,
) -> CreditTransaction:
    if amount <= 0:
        raise BusinessRuleViolation("Recharge amount must be positive")
    transaction = apply_change(
        session,
        user_id,
        amount,
        type,
        description=description,
        related_id=related_id,
        related_type=related_type,
    )
    session.commit()
    session.refresh(transaction)
    return transaction


def consume(
    session: Session,
    user_id: uuid.UUID,
    amount: int,
    *,
    description: str | None = None,
    related_id: int | None = None,
    related_type: str | None = None,
) -> CreditTransaction:
    if amount <= 0:
        raise BusinessRuleViolation("Consume amount must be positive")
    transaction = apply_change(
        session,
        user_id,
        -amount,
        CreditTransactionType.CONSUME,
        description=description,
        related_id=related_id,
        related_type=related_type,
    )
    session.commit()
    session.refresh(transaction)
    return transaction


def admin_adjust(
    session: Session, adjust: CreditAdjust, operator_id: uuid.UUID
) -> CreditTransaction:
    if adjust.amount == 0:
        raise BusinessRuleViolation("Adjustment amount must not be zero")
    transaction = apply_change(
        session,
        adjust.user_id,
        adjust.amount,
        CreditTransactionType.ADMIN_ADJUST,
        description=adjust.description,
        operator_id=operator_id,
    )
    session.commit()
    session.refresh(transaction)
    logger.info(
        "Credits adjusted",
        user_id=str(adjust.user_id),
        amount=adjust.amount,
        operator_id=str(operator_id),
    )
    return transaction


def list_transactions(session: Session, user_id: uuid.UUID, params: PageParams):
    statement = (
        select(CreditTransaction)
        .where(CreditTransaction.user_id == user_id)
        .order_by(col(CreditTransaction.created_at).desc(), col(CreditTransaction.id).desc())
    )
    return fetch_page(session, statement, params)


def list_redeem_history(session: Session, user_id: uuid.UUID, params: PageParams):
    statement = (
        select(CreditRedeemHistory)
        .where(CreditRedeemHistory.user_id == user_id)
        .order_by(col(CreditRedeemHistory.redeemed_at).desc(), col(CreditRedeemHistory.id).desc())
    )
    return fetch_page(session, statement, params)


def redeem(session: Session, user_id: uuid.UUID, code: str) -> CreditRedeemResult:
    normalized = redeem_codes.normalize_code(code)
    redeem_code = session.exec(
        select(CreditRedeemCode)
        .where(CreditRedeemCode.code == normalized)
        .with_for_update()
    ).first()
    if not redeem_code:
        REDEEM_ATTEMPTS.labels(kind="credits", status="not_found").inc()
        raise EntityNotFoundError("Redeem code", normalized)

    failure = redeem_codes.code_failure(
        session, redeem_code, CreditRedeemHistory, user_id, utcnow()
    )
    if failure:
        session.add(
            CreditRedeemHistory(
                code_id=redeem_code.id,
                user_id=user_id,
                credits=0,
                status=RedeemResultStatus.FAILED,
                message=failure,
            )
        )
        session.commit()
        REDEEM_ATTEMPTS.labels(kind="credits", status="failed").inc()
        raise BusinessRuleViolation(failure, {"code": normalized})

    transaction = apply_change(
        session,
        user_id,
        redeem_code.credits,
        CreditTransactionType.REDEEM,
        description=f"Redeem code {normalized}",
        related_id=redeem_code.id,
        related_type="credit_redeem_code",
    )
    redeem_codes.consume_use(session, redeem_code)
    session.add(
        CreditRedeemHistory(
            code_id=redeem_code.id,
            user_id=user_id,
            credits=redeem_code.credits,
            status=RedeemResultStatus.SUCCESS,
            message="Redeemed",
        )
    )
    session.commit()
    REDEEM_ATTEMPTS.labels(kind="credits", status="success").inc()
    logger.info(
        "Credit code redeemed",
        user_id=str(user_id),
        code_id=redeem_code.id,
        credits=redeem_code.credits,
    )
    return CreditRedeemResult(
        message="Redeemed successfully",
        credits=redeem_code.credits,
        balance=transaction.balance_after,
    )


def list_codes(
    session: Session,
    params: PageParams,
    *,
    search: str | None = None,
    status: RedeemCodeStatus | None = None,
):
    statement = select(CreditRedeemCode)
    if search:
        statement = statement.where(
            col(CreditRedeemCode.code).ilike(f"%{search.upper()}%")
        )
    if status:
        statement = statement.where(CreditRedeemCode.status == status)
    statement = statement.order_by(col(CreditRedeemCode.created_at).desc(), col(CreditRedeemCode.id).desc())
    return fetch_page(session, statement, params)


def generate_codes(
    session: Session, generate: CreditRedeemCodeGenerate, created_by: uuid.UUID
) -> list[CreditRedeemCode]:
    codes = []
    for _ in range(generate.count):
        code = CreditRedeemCode(
            code=redeem_codes.new_unique_code(session, CreditRedeemCode, generate.prefix),
            credits=generate.credits,
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
    logger.info("Credit codes generated", count=len(codes), created_by=str(created_by))
    return codes


def create_code(
    session: Session, code_in: CreditRedeemCodeCreate, created_by: uuid.UUID
) -> CreditRedeemCode:
    normalized = redeem_codes.normalize_code(code_in.code)
    if session.exec(
        select(CreditRedeemCode.id).where(CreditRedeemCode.code == normalized)
    ).first():
        raise EntityAlreadyExistsError(
            f"Redeem code '{normalized}' already exists", {"code": normalized}
        )
    code = CreditRedeemCode.model_validate(
        code_in, update={"code": normalized, "created_by": created_by}
    )
    session.add(code)
    session.commit()
    session.refresh(code)
    return code


def get_code(session: Session, code_id: int) -> CreditRedeemCode:
    code = session.get(CreditRedeemCode, code_id)
    if not code:
        raise EntityNotFoundError("Redeem code", code_id)
    return code


def update_code(
    session: Session, code_id: int, code_in: CreditRedeemCodeUpdate
) -> CreditRedeemCode:
    code = get_code(session, code_id)
    code.sqlmodel_update(code_in.model_dump(exclude_unset=True))
    session.add(code)
    session.commit()
    session.refresh(code)
    return code


def delete_code(session: Session, code_id: int) -> None:
    code = get_code(session, code_id)
    if redeem_codes.has_history(session, CreditRedeemHistory, code.id):
        raise BusinessRuleViolation(
            "Codes with redemption history cannot be deleted, disable them instead",
            {"code": code.code},
        )
    session.delete(code)
    session.commit()
