# tests/v1/test_jwt_validation.py
"""Tests for JWT token validation edge cases."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from meriter_core.api.v1.dependencies import get_optional_user
from meriter_core.core.security import create_access_token, decode_access_token
from meriter_core.core.settings import settings


def _quota_url(community) -> str:
    return f"/api/v1/communities/{community.id}/quota"


class TestJWTValidationEdgeCases:
    """Rejected tokens on an endpoint that requires authentication."""

    def test_jwt_without_bearer_prefix(self, client, community):
        response = client.get(_quota_url(community), headers={"Authorization": "InvalidToken123"})
        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)

    def test_jwt_with_malformed_token(self, client, community):
        response = client.get(
            _quota_url(community),
            headers={"Authorization": "Bearer not.a.valid.jwt"},
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_jwt_with_wrong_secret(self, client, community, test_user):
        token = jwt.encode(
            {"sub": str(test_user.id)},
            "wrong_secret_key",
            algorithm=settings.jwt_algorithm,
        )

        response = client.get(_quota_url(community), headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_jwt_with_expired_token(self, client, community, test_user):
        token = jwt.encode(
            {"sub": str(test_user.id), "exp": datetime.now(UTC) - timedelta(minutes=1)},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        response = client.get(_quota_url(community), headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_jwt_without_subject(self, client, community):
        token = jwt.encode({"role": "lead"}, settings.secret_key, algorithm=settings.jwt_algorithm)

        response = client.get(_quota_url(community), headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_jwt_with_non_numeric_subject(self, client, community):
        token = jwt.encode({"sub": "alice"}, settings.secret_key, algorithm=settings.jwt_algorithm)

        response = client.get(_quota_url(community), headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_jwt_for_unknown_user(self, client, community):
        token = create_access_token(9999)

        response = client.get(_quota_url(community), headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "User not found"


def test_access_token_round_trip(test_user) -> None:
    token = create_access_token(test_user.id, {"scope": "api"})
    payload = decode_access_token(token)

    assert payload["sub"] == str(test_user.id)
    assert payload["scope"] == "api"
    assert "exp" in payload


def test_optional_user_without_credentials(db_session) -> None:
    assert get_optional_user(None, db_session) is None


def test_optional_user_with_bad_token(db_session) -> None:
    credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage")
    with pytest.raises(HTTPException) as exc_info:
        get_optional_user(credentials, db_session)
    assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
