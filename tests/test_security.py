from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.bug_tracker.bug_tracker.core.exceptions import AuthenticationError
from src.bug_tracker.bug_tracker.security.passwords import hash_password, verify_password
from src.bug_tracker.bug_tracker.security.sessions import SessionIssuer
from src.bug_tracker.bug_tracker.security.tokens import (
    generate_numeric_code,
    generate_secret,
    hash_token,
    token_matches,
)

KEY = "unit-test-session-signing-key-0123456789"


def test_numeric_codes_have_six_digits():
    for _ in range(200):
        code = generate_numeric_code()
        assert len(code) == 6
        assert code.isdigit()
        assert code[0] != "0"


def test_secrets_are_random_hex():
    a, b = generate_secret(), generate_secret()
    assert a != b
    assert len(a) == 40
    int(a, 16)


def test_token_matches_only_its_own_hash():
    secret = generate_secret()
    assert token_matches(secret, hash_token(secret))
    assert not token_matches(secret + "0", hash_token(secret))
    assert not token_matches("", hash_token(""))
    assert not token_matches(secret, None)


def test_verify_password_tolerates_bad_hashes():
    stored = hash_password("secret123")
    assert verify_password(stored, "secret123")
    assert not verify_password(stored, "secret124")
    assert not verify_password("CHANGE_ME", "secret123")
    assert not verify_password("", "secret123")


def test_session_round_trip():
    issuer = SessionIssuer(KEY)
    assert issuer.verify(issuer.issue(7)) == 7


def test_session_rejects_expired_and_foreign_tokens():
    issuer = SessionIssuer(KEY, ttl=timedelta(days=1))
    old = issuer.issue(7, now=datetime.now(timezone.utc) - timedelta(days=2))
    with pytest.raises(AuthenticationError, match="expired"):
        issuer.verify(old)

    foreign = SessionIssuer("another-session-signing-key-0123456789").issue(7)
    with pytest.raises(AuthenticationError):
        issuer.verify(foreign)
    with pytest.raises(AuthenticationError):
        issuer.verify("")


def test_session_secret_is_required():
    with pytest.raises(ValueError):
        SessionIssuer("")
