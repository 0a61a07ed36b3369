"""Tests for authentication."""

from datetime import timedelta

import pytest

from deployhub.api.schemas.auth import UserCreate
from deployhub.core.exceptions import ConflictError
from deployhub.models.user import UserRole
from deployhub.services.auth_service import AuthenticationError, AuthService


@pytest.fixture
def auth_service(user_repository):
    return AuthService(user_repository, secret_key="test-secret")


class TestAuthService:
    def test_register_and_authenticate(self, auth_service):
        user = auth_service.register_user(UserCreate(username="dave", email="dave@example.com", password="pw123456"))

        assert user.role == UserRole.USER
        assert user.hashed_password != "pw123456"
        assert auth_service.authenticate_user("dave@example.com", "pw123456").id == user.id
        assert auth_service.authenticate_user("dave@example.com", "wrong") is None

    def test_duplicate_username(self, auth_service, user):
        with pytest.raises(ConflictError):
            auth_service.register_user(UserCreate(username="alice", email="other@example.com", password="pw"))

    def test_token_round_trip(self, auth_service, user):
        token = auth_service.create_access_token(user)

        token_data = auth_service.verify_token(token)

        assert token_data.user_id == user.id
        assert token_data.role == UserRole.USER
        assert auth_service.get_current_user(token).id == user.id

    def test_expired_token(self, auth_service, user):
        token = auth_service.create_access_token(user, expires_delta=timedelta(seconds=-1))

        with pytest.raises(AuthenticationError):
            auth_service.verify_token(token)

    def test_token_signed_with_other_key(self, auth_service, user, user_repository):
        token = AuthService(user_repository, secret_key="another-secret").create_access_token(user)

        with pytest.raises(AuthenticationError):
            auth_service.get_current_user(token)
