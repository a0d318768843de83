"""Tests for bearer-token identity and ownership checks."""
from __future__ import annotations

import jwt
import pytest

from SmartPRD.core.auth import RequestContext, context_from_authorization, require_owner
from SmartPRD.core.errors import UnauthenticatedError, UnauthorizedError
from SmartPRD.core.settings import settings
from tests.conftest import make_token


class TestContextFromAuthorization:
    def test_valid_token(self):
        ctx = context_from_authorization(f"Bearer {make_token('u-1', 'a@b.io')}", request_id="rid")
        assert ctx == RequestContext(user_id="u-1", email="a@b.io", request_id="rid")

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer "])
    def test_missing_or_malformed_header(self, header):
        with pytest.raises(UnauthenticatedError):
            context_from_authorization(header)

    def test_wrong_secret(self):
        token = jwt.encode(
            {"sub": "u-1", "aud": settings.jwt_audience},
            "another-secret-that-is-long-enough-for-hs256",
            algorithm="HS256",
        )
        with pytest.raises(UnauthenticatedError):
            context_from_authorization(f"Bearer {token}")

    def test_wrong_audience(self):
        token = jwt.encode({"sub": "u-1", "aud": "other"}, settings.jwt_secret, algorithm="HS256")
        with pytest.raises(UnauthenticatedError):
            context_from_authorization(f"Bearer {token}")

    def test_expired(self):
        with pytest.raises(UnauthenticatedError):
            context_from_authorization(f"Bearer {make_token('u-1', exp=1)}")


class TestRequireOwner:
    def test_owner_passes(self):
        require_owner(RequestContext(user_id="u-1"), "u-1")

    def test_other_user_rejected(self):
        with pytest.raises(UnauthorizedError):
            require_owner(RequestContext(user_id="u-2"), "u-1")
