from fastapi import APIRouter, Depends, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic.networks import EmailStr

from hanmo.api.deps import get_current_active_superuser
from hanmo.core.config import settings
from hanmo.models import Message
from hanmo.utils.mail import generate_test_email, send_email

router = APIRouter(prefix="/utils", tags=["utils"])


@router.post(
    "/test-email/",
    dependencies=[Depends(get_current_active_superuser)],
    status_code=201,
)
def test_email(email_to: EmailStr) -> Message:
    """
    Test emails.
    """
    email_data = generate_test_email(email_to=email_to)
    send_email(
        email_to=email_to,
        subject=email_data.subject,
        html_content=email_data.html_content,
    )
    return Message(message="Test email sent")


@router.get("/health-check/")
def health_check() -> bool:
    return True


@router.get("/metrics")
def metrics() -> Response:
    if not settings.ENABLE_METRICS:
        raise HTTPException(status_code=404, detail="Metrics are disabled")
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
