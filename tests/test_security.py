"""Tests for password hashing and bearer tokens."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from pydantic import ValidationError

from errors import ConfigurationError, Unauthorized
from security import JWT_ALG, PasswordHasher, TokenService


class TestPasswordHasher:
    def test_hash_is_salted_and_verifies(self, passwords):
        first = passwords.hash("Passw0rd")
        second = passwords.hash("Passw0rd")
        assert first != second
        assert first != "Passw0rd"
        assert passwords.verify("Passw0rd", first)
        assert passwords.verify("Passw0rd", second)

    def test_wrong_password_rejected(self, passwords):
        hashed = passwords.hash("Passw0rd")
        assert not passwords.verify("passw0rd", hashed)

    def test_uses_at_least_ten_rounds(self, passwords):
        hashed = passwords.hash("Passw0rd")
        # $2b$<rounds>$...
        assert int(hashed.split("$")[2]) >= 10

    def test_missing_or_garbage_hash_is_false(self, passwords):
        assert not passwords.verify("Passw0rd", None)
        assert not passwords.verify("Passw0rd", "")
        assert not passwords.verify("Passw0rd", "not-a-hash")


class TestTokenService:
    def test_issue_then_verify(self, tokens):
        token = tokens.issue("507f1f77bcf86cd799439011", "a@x.com")
        claim = tokens.verify(token)
        assert claim.user_id == "507f1f77bcf86cd799439011"
        assert claim.email == "a@x.com"

    def test_token_expires_after_one_hour(self, tokens):
        token = tokens.issue("uid", "a@x.com")
        payload = jwt.get_unverified_claims(token)
        assert payload["exp"] - payload["iat"] == 3600

    def test_expired_token_rejected(self, tokens):
        issued = datetime.now(timezone.utc) - timedelta(hours=2)
        token = tokens.issue("uid", "a@x.com", now=issued)
        with pytest.raises(Unauthorized):
            tokens.verify(token)

    def test_wrong_secret_rejected(self, tokens):
        forged = TokenService("other-secret").issue("uid", "a@x.com")
        with pytest.raises(Unauthorized):
            tokens.verify(forged)

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed_token_rejected(self, tokens, token):
        with pytest.raises(Unauthorized):
            tokens.verify(token)

    def test_token_without_subject_rejected(self, tokens):
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"email": "a@x.com", "exp": exp}, "test-secret", algorithm=JWT_ALG)
        with pytest.raises(Unauthorized):
            tokens.verify(token)

    def test_empty_secret_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            TokenService("")

    def test_claim_is_immutable(self, tokens):
        claim = tokens.verify(tokens.issue("abc", "a@x.com"))
        with pytest.raises(ValidationError):
            claim.user_id = "someone-else"
