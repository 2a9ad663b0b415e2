# tests/test_health.py
"""Tests for the service-level endpoints."""

from fastapi import status

from meriter_core.core.settings import settings


def test_health_check(client) -> None:
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_root(client) -> None:
    response = client.get("/")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["name"] == settings.app_name
    assert data["version"] == settings.app_version


def test_quota_worker_disabled_in_tests(app, client) -> None:
    assert app.state.quota_reset_worker is None
