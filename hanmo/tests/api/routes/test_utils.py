from unittest.mock import patch

from fastapi.testclient import TestClient

from hanmo.core.config import settings


def test_health_check(client: TestClient) -> None:
    r = client.get(f"{settings.API_V1_STR}/utils/health-check/")
    assert r.status_code == 200
    assert r.json() is True


def test_correlation_id_echoed(client: TestClient) -> None:
    r = client.get(
        f"{settings.API_V1_STR}/utils/health-check/",
        headers={"X-Correlation-ID": "abc-123"},
    )
    assert r.headers["X-Correlation-ID"] == "abc-123"


def test_metrics_exposed(client: TestClient) -> None:
    client.get(f"{settings.API_V1_STR}/utils/health-check/")
    r = client.get(f"{settings.API_V1_STR}/utils/metrics")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert "hanmo_http_requests_total" in r.text


def test_test_email(client: TestClient, superuser_token_headers: dict[str, str]) -> None:
    with (
        patch("hanmo.api.routes.utils.send_email", return_value=None) as send_email,
        patch("hanmo.core.config.settings.SMTP_HOST", "smtp.example.com"),
    ):
        r = client.post(
            f"{settings.API_V1_STR}/utils/test-email/",
            headers=superuser_token_headers,
            params={"email_to": "recipient@example.com"},
        )
    assert r.status_code == 201
    assert r.json() == {"message": "Test email sent"}
    send_email.assert_called_once()


def test_test_email_normal_user(
    client: TestClient, normal_user_token_headers: dict[str, str]
) -> None:
    r = client.post(
        f"{settings.API_V1_STR}/utils/test-email/",
        headers=normal_user_token_headers,
        params={"email_to": "recipient@example.com"},
    )
    assert r.status_code == 403


def test_test_email_requires_auth(client: TestClient) -> None:
    r = client.post(
        f"{settings.API_V1_STR}/utils/test-email/",
        params={"email_to": "recipient@example.com"},
    )
    assert r.status_code == 401
