"""
Tests for password hashing, token helpers, the hash script and store selection.
"""

import asyncio
import logging
from datetime import timedelta

import pytest
import structlog

from eventreg.core.errors import ConfigurationError, InvalidOrExpiredToken
from eventreg.core.logging import setup_logging
from eventreg.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from eventreg.scripts import hash_password as hash_password_script
from eventreg.storage import create_store, get_storage, reset_storage


def test_hash_and_verify():
    hashed = hash_password("s3cret", rounds=4)
    assert hashed.startswith("$2")
    assert verify_password("s3cret", hashed) is True
    assert verify_password("wrong", hashed) is False


@pytest.mark.parametrize("hashed", ["", None, "not-a-bcrypt-hash"])
def test_verify_against_unusable_hash(hashed):
    assert verify_password("anything", hashed) is False


def test_verify_overlong_password():
    hashed = hash_password("a" * 72, rounds=4)
    assert verify_password("a" * 72, hashed) is True
    assert verify_password("a" * 73, hashed) is False


def test_hash_rejects_overlong_password():
    with pytest.raises(ValueError):
        hash_password("x" * 100, rounds=4)


def test_token_round_trip():
    token = create_access_token({"username": "admin", "role": "admin"})
    payload = decode_access_token(token)
    assert payload["username"] == "admin"
    assert payload["exp"] > payload["iat"]


def test_expired_token():
    token = create_access_token({"username": "admin"}, expires_delta=timedelta(seconds=-1))
    with pytest.raises(InvalidOrExpiredToken):
        decode_access_token(token)


def test_missing_jwt_secret(override_env):
    override_env(JWT_SECRET="")
    with pytest.raises(ConfigurationError):
        create_access_token({"username": "admin"})


def test_hash_password_script(monkeypatch, capsys):
    answers = iter(["hunter22", "hunter22"])
    monkeypatch.setattr(hash_password_script.getpass, "getpass", lambda prompt="": next(answers))

    assert hash_password_script.main(["--rounds", "4"]) == 0

    line = next(l for l in capsys.readouterr().out.splitlines() if l.startswith("ADMIN_PASSWORD_HASH="))
    assert verify_password("hunter22", line.split("=", 1)[1])


def test_hash_password_script_mismatch(monkeypatch):
    answers = iter(["hunter22", "hunter23"])
    monkeypatch.setattr(hash_password_script.getpass, "getpass", lambda prompt="": next(answers))
    assert hash_password_script.main([]) == 1


def test_hash_password_script_overlong(monkeypatch):
    monkeypatch.setattr(hash_password_script.getpass, "getpass", lambda prompt="": "p" * 80)
    assert hash_password_script.main(["--rounds", "4"]) == 1


@pytest.mark.asyncio
async def test_concurrent_first_requests_share_one_store():
    await reset_storage()
    try:
        first, second = await asyncio.gather(get_storage(), get_storage())
        assert first is second
    finally:
        await reset_storage()


def test_setup_logging_is_repeatable():
    setup_logging()
    setup_logging()
    handlers = [
        h for h in logging.getLogger().handlers
        if isinstance(h.formatter, structlog.stdlib.ProcessorFormatter)
    ]
    assert len(handlers) == 1


def test_unknown_storage_mode(override_env):
    override_env(STORAGE_MODE="csv")
    with pytest.raises(ConfigurationError):
        create_store()


def test_sheets_mode_without_credentials(override_env):
    override_env(STORAGE_MODE="sheets", GOOGLE_SHEETS_CLIENT_EMAIL="", GOOGLE_SHEETS_PRIVATE_KEY="")
    with pytest.raises(ConfigurationError):
        create_store()
