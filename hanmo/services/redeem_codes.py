"""Validity rules shared by credit and VIP redeem codes."""

import secrets
import uuid
from datetime import datetime
from typing import Any

from sqlmodel import Session, col, select

from hanmo.models import RedeemCodeStatus, RedeemResultStatus, as_utc

CODE_RANDOM_BYTES = 6
MAX_GENERATION_ATTEMPTS = 10


def normalize_code(code: str) -> str:
    return code.strip().upper()


def random_code(prefix: str = "") -> str:
    return f"{prefix.upper()}{secrets.token_hex(CODE_RANDOM_BYTES).upper()}"


def new_unique_code(session: Session, model: type[Any], prefix: str = "") -> str:
    for _ in range(MAX_GENERATION_ATTEMPTS):
        code = random_code(prefix)
        if not session.exec(select(model.id).where(model.code == code)).first():
            return code
    raise RuntimeError("Could not generate a unique redeem code")


def code_failure(
    session: Session,
    code: Any,
    history_model: type[Any],
    user_id: uuid.UUID,
    now: datetime,
) -> str | None:
    """
    Return why ``code`` cannot be redeemed by ``user_id``, or None when it can.

    Expired and exhausted codes are moved to their terminal status on the way.
    """
    if code.status != RedeemCodeStatus.ACTIVE:
        return "Redeem code is not active"
    if code.expires_at and as_utc(code.expires_at) <= now:
        code.status = RedeemCodeStatus.EXPIRED
        session.add(code)
        return "Redeem code has expired"
    if code.used_count >= code.max_uses:
        code.status = RedeemCodeStatus.USED_UP
        session.add(code)
        return "Redeem code has been used up"
    already = session.exec(
        select(history_model.id).where(
            history_model.code_id == code.id,
            history_model.user_id == user_id,
            col(history_model.status) == RedeemResultStatus.SUCCESS,
        )
    ).first()
    if already:
        return "You have already redeemed this code"
    return None


def consume_use(session: Session, code: Any) -> None:
    code.used_count += 1
    if code.used_count >= code.max_uses:
        code.status = RedeemCodeStatus.USED_UP
    session.add(code)


def has_history(session: Session, history_model: type[Any], code_id: int) -> bool:
    return (
        session.exec(
            select(history_model.id).where(history_model.code_id == code_id)
        ).first()
        is not None
    )
