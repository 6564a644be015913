"""Email rendering and delivery."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import emails  # type: ignore
from jinja2 import Template
import jwt
from jwt.exceptions import InvalidTokenError

from hanmo.core import security
from hanmo.core.config import settings
from hanmo.core.observability import get_logger

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).parent.parent / "email-templates" / "build"


@dataclass
class EmailData:
    """Email data container with HTML content and subject."""

    html_content: str
    subject: str


def render_email_template(*, template_name: str, context: dict[str, Any]) -> str:
    template_str = (TEMPLATES_DIR / template_name).read_text()
    html_content = Template(template_str).render(context)
    return html_content


def send_email(
    *,
    email_to: str,
    subject: str = "",
    html_content: str = "",
) -> None:
    """
    Send email using configured SMTP settings.

    Raises:
        AssertionError: If email configuration is not enabled
    """
    assert settings.emails_enabled, "no provided configuration for email variables"
    message = emails.Message(
        subject=subject,
        html=html_content,
        mail_from=(settings.EMAILS_FROM_NAME, settings.EMAILS_FROM_EMAIL),
    )
    smtp_options: dict[str, Any] = {"host": settings.SMTP_HOST, "port": settings.SMTP_PORT}
    if settings.SMTP_TLS:
        smtp_options["tls"] = True
    elif settings.SMTP_SSL:
        smtp_options["ssl"] = True
    if settings.SMTP_USER:
        smtp_options["user"] = settings.SMTP_USER
    if settings.SMTP_PASSWORD:
        smtp_options["password"] = settings.SMTP_PASSWORD
    response = message.send(to=email_to, smtp=smtp_options)
    logger.info("Email sent", email_to=email_to, subject=subject, result=str(response))


def generate_test_email(email_to: str) -> EmailData:
    project_name = settings.PROJECT_NAME
    subject = f"{project_name} - Test email"
    html_content = render_email_template(
        template_name="test_email.html",
        context={"project_name": settings.PROJECT_NAME, "email": email_to},
    )
    return EmailData(html_content=html_content, subject=subject)


def generate_new_account_email(email_to: str, username: str) -> EmailData:
    project_name = settings.PROJECT_NAME
    subject = f"{project_name} - New account for user {username}"
    html_content = render_email_template(
        template_name="new_account.html",
        context={
            "project_name": settings.PROJECT_NAME,
            "username": username,
            "email": email_to,
            "link": settings.FRONTEND_HOST,
        },
    )
    return EmailData(html_content=html_content, subject=subject)


def generate_vip_activated_email(
    email_to: str, plan_name: str, expire_date: datetime
) -> EmailData:
    project_name = settings.PROJECT_NAME
    subject = f"{project_name} - Your VIP membership is active"
    html_content = render_email_template(
        template_name="vip_activated.html",
        context={
            "project_name": settings.PROJECT_NAME,
            "email": email_to,
            "plan_name": plan_name,
            "expire_date": expire_date.strftime("%Y-%m-%d"),
            "link": f"{settings.FRONTEND_HOST}/vip",
        },
    )
    return EmailData(html_content=html_content, subject=subject)


def generate_verification_email(email_to: str, token: str) -> EmailData:
    project_name = settings.PROJECT_NAME
    subject = f"{project_name} - Verify your email"
    html_content = render_email_template(
        template_name="verify_email.html",
        context={
            "project_name": settings.PROJECT_NAME,
            "username": email_to,
            "email": email_to,
            "valid_hours": settings.EMAIL_VERIFY_TOKEN_EXPIRE_HOURS,
            "link": f"{settings.FRONTEND_HOST}/verify-email?token={token}",
        },
    )
    return EmailData(html_content=html_content, subject=subject)


def generate_email_verification_token(email: str) -> str:
    delta = timedelta(hours=settings.EMAIL_VERIFY_TOKEN_EXPIRE_HOURS)
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {"exp": now + delta, "nbf": now, "sub": email, "type": "email_verification"},
        settings.SECRET_KEY,
        algorithm=security.ALGORITHM,
    )


def verify_email_verification_token(token: str) -> str | None:
    """Return the email the token was issued for, or None when it is not valid."""
    try:
        decoded_token = security.decode_token(token)
    except InvalidTokenError:
        return None
    if decoded_token.get("type") != "email_verification":
        return None
    subject = decoded_token.get("sub")
    return str(subject) if subject is not None else None
