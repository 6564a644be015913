from typing import Any

from fastapi import APIRouter, Depends, Request

from hanmo.api.deps import CurrentUser, SessionDep
from hanmo.core.rate_limiter import feedback_limiter, get_client_ip
from hanmo.core.rbac import require_permission
from hanmo.models import (
    FeedbackCreate,
    FeedbackPublic,
    FeedbackStatus,
    FeedbackStatusUpdate,
    FeedbackType,
    Message,
    Page,
)
from hanmo.services import audit
from hanmo.services import feedback as feedback_service
from hanmo.utils.pagination import PageDep

router = APIRouter(prefix="/feedback", tags=["feedback"])


@router.post(
    "/", dependencies=[Depends(feedback_limiter)], response_model=FeedbackPublic
)
def submit_feedback(
    session: SessionDep,
    request: Request,
    current_user: CurrentUser,
    feedback_in: FeedbackCreate,
) -> Any:
    """
    Send feedback to the site team.
    """
    feedback = feedback_service.submit(
        session, feedback_in, user_id=current_user.id, ip=get_client_ip(request)
    )
    audit.log_event(
        session,
        module="feedback",
        action="create",
        description=f"Feedback submitted: {feedback.title}",
        user_id=current_user.id,
        request=request,
    )
    return feedback


@router.get(
    "/",
    dependencies=[Depends(require_permission("feedback.read"))],
    response_model=Page[FeedbackPublic],
)
def read_feedback_list(
    session: SessionDep,
    params: PageDep,
    status: FeedbackStatus | None = None,
    type: FeedbackType | None = None,
) -> Any:
    items, pagination = feedback_service.list_feedback(
        session, params, status=status, type=type
    )
    return Page(data=items, pagination=pagination)


@router.get(
    "/{feedback_id}",
    dependencies=[Depends(require_permission("feedback.read"))],
    response_model=FeedbackPublic,
)
def read_feedback(session: SessionDep, feedback_id: int) -> Any:
    return feedback_service.get_feedback(session, feedback_id)


@router.patch(
    "/{feedback_id}",
    dependencies=[Depends(require_permission("feedback.update"))],
    response_model=FeedbackPublic,
)
def update_feedback_status(
    session: SessionDep, feedback_id: int, body: FeedbackStatusUpdate
) -> Any:
    return feedback_service.set_status(session, feedback_id, body.status)


@router.delete(
    "/{feedback_id}",
    dependencies=[Depends(require_permission("feedback.delete"))],
)
def delete_feedback(session: SessionDep, feedback_id: int) -> Message:
    feedback_service.delete_feedback(session, feedback_id)
    return Message(message="Feedback deleted successfully")
