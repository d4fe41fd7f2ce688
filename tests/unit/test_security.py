"""Tests for bearer token decoding."""

import uuid
from datetime import datetime, timedelta

from jose import jwt

from thesisflow.core.config import get_settings
from thesisflow.core.security import decode_token


def make_token(claims, key=None):
    settings = get_settings()
    return jwt.encode(claims, key or settings.secret_key, algorithm=settings.algorithm)


class TestDecodeToken:

    def test_valid_token(self):
        user_id = uuid.uuid4()
        assert decode_token(make_token({"sub": str(user_id)})) == user_id

    def test_wrong_signature(self):
        assert decode_token(make_token({"sub": str(uuid.uuid4())}, key="another-key")) is None

    def test_expired(self):
        token = make_token({"sub": str(uuid.uuid4()), "exp": datetime.utcnow() - timedelta(minutes=1)})
        assert decode_token(token) is None

    def test_missing_or_malformed_subject(self):
        assert decode_token(make_token({"role": "vc"})) is None
        assert decode_token(make_token({"sub": "not-a-uuid"})) is None

    def test_garbage(self):
        assert decode_token("not.a.token") is None
