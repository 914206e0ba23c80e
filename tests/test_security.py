"""Tests for password hashing, invite tokens and email helpers."""

from __future__ import annotations

import re

from prompt_shelf.utils.security import (
    hash_password,
    new_invite_token,
    normalize_email,
    validate_email,
    validate_password,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = hash_password("correct-horse")
    assert hashed != "correct-horse"
    assert verify_password("correct-horse", hashed)
    assert not verify_password("wrong-horse", hashed)


def test_invite_tokens_are_url_safe_and_distinct():
    tokens = {new_invite_token() for _ in range(50)}
    assert len(tokens) == 50
    for token in tokens:
        assert len(token) >= 43
        assert re.fullmatch(r"[A-Za-z0-9_-]+", token)


def test_normalize_email():
    assert normalize_email("  Someone@Example.COM\n") == "someone@example.com"


def test_validate_email():
    assert validate_email("a@b.co")
    assert not validate_email("no-at-sign.com")
    assert not validate_email("spaces in@example.com")


def test_validate_password():
    assert validate_password("12345678")
    assert not validate_password("1234567")
