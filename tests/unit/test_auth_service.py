"""
Tests for bearer token verification and role policies.
"""
import uuid
from datetime import timedelta

import pytest
from fastapi import HTTPException
from jose import jwt

from src.sushflix.core.pbac import check_policy
from src.sushflix.schemas.auth import AuthContext
from src.sushflix.schemas.enums import Role
from src.sushflix.services.auth_service import AuthService


class TestVerifyToken:
    def test_round_trip(self, auth_service):
        user_id = uuid.uuid4()
        token = auth_service.create_access_token(user_id, Role.CREATOR)

        context = auth_service.verify_token(token)

        assert context.user_id == user_id
        assert context.role == Role.CREATOR

    def test_missing_role_defaults_to_user(self, auth_service):
        token = jwt.encode({"sub": str(uuid.uuid4())}, auth_service.secret, algorithm=auth_service.algorithm)

        assert auth_service.verify_token(token).role == Role.USER

    def test_expired_token(self, auth_service):
        token = auth_service.create_access_token(uuid.uuid4(), expires_delta=timedelta(minutes=-5))

        with pytest.raises(HTTPException) as exc_info:
            auth_service.verify_token(token)

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    def test_wrong_secret(self, auth_service):
        token = AuthService(secret="another-secret").create_access_token(uuid.uuid4())

        with pytest.raises(HTTPException) as exc_info:
            auth_service.verify_token(token)

        assert exc_info.value.detail == "Invalid token"

    def test_subject_must_be_a_user_id(self, auth_service):
        token = jwt.encode({"sub": "not-a-uuid"}, auth_service.secret, algorithm=auth_service.algorithm)

        with pytest.raises(HTTPException) as exc_info:
            auth_service.verify_token(token)

        assert exc_info.value.detail == "Invalid token claims"

    def test_unknown_role_is_rejected(self, auth_service):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "role": "superuser"},
            auth_service.secret,
            algorithm=auth_service.algorithm,
        )

        with pytest.raises(HTTPException) as exc_info:
            auth_service.verify_token(token)

        assert exc_info.value.status_code == 401


@pytest.mark.parametrize(
    "role,action,resource,allowed",
    [
        (Role.CREATOR, "create", "content", True),
        (Role.USER, "create", "content", False),
        (Role.USER, "read", "content", True),
        (Role.USER, "like", "content", True),
        (Role.USER, "read", "subscribers", False),
        (Role.CREATOR, "read", "subscribers", True),
        (Role.USER, "sweep", "subscriptions", False),
        (Role.ADMIN, "sweep", "subscriptions", True),
    ],
)
def test_role_policies(role, action, resource, allowed):
    user = AuthContext(user_id=uuid.uuid4(), role=role)

    assert check_policy(user, action, resource) is allowed
