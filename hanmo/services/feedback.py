import uuid

from sqlmodel import Session, col, select

from hanmo.core.exceptions import EntityNotFoundError
from hanmo.core.observability import get_logger
from hanmo.models import (
    Feedback,
    FeedbackCreate,
    FeedbackStatus,
    FeedbackType,
)
from hanmo.utils.pagination import PageParams, fetch_page

logger = get_logger(__name__)


def submit(
    session: Session,
    feedback_in: FeedbackCreate,
    *,
    user_id: uuid.UUID | None,
    ip: str | None,
) -> Feedback:
    feedback = Feedback.model_validate(
        feedback_in, update={"user_id": user_id, "ip_address": ip}
    )
    session.add(feedback)
    session.commit()
    session.refresh(feedback)
    logger.info(
        "Feedback submitted", feedback_id=feedback.id, type=feedback.type.value
    )
    return feedback


def list_feedback(
    session: Session,
    params: PageParams,
    *,
    status: FeedbackStatus | None = None,
    type: FeedbackType | None = None,
):
    statement = select(Feedback)
    if status:
        statement = statement.where(Feedback.status == status)
    if type:
        statement = statement.where(Feedback.type == type)
    statement = statement.order_by(
        col(Feedback.created_at).desc(), col(Feedback.id).desc()
    )
    return fetch_page(session, statement, params)


def get_feedback(session: Session, feedback_id: int) -> Feedback:
    feedback = session.get(Feedback, feedback_id)
    if not feedback:
        raise EntityNotFoundError("Feedback", feedback_id)
    return feedback


def set_status(session: Session, feedback_id: int, status: FeedbackStatus) -> Feedback:
    feedback = get_feedback(session, feedback_id)
    feedback.status = status
    session.add(feedback)
    session.commit()
    session.refresh(feedback)
    return feedback


def delete_feedback(session: Session, feedback_id: int) -> None:
    feedback = get_feedback(session, feedback_id)
    session.delete(feedback)
    session.commit()
