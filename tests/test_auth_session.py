# tests/test_auth_session.py

from __future__ import annotations

import json
from pathlib import Path

import pytest

from taskpilot.api.auth_api import OtpPurpose
from taskpilot.auth.auth_store import AuthStore, validate_otp, validate_signup
from taskpilot.core.errors import InvalidInput, InvalidRequest, Unauthorized
from taskpilot.core.models import AuthUser
from taskpilot.core.session import FileCredentialStore, Session

from .fakes import FakeAuthGateway, FakeCredentialStore


@pytest.fixture()
def signed_out() -> Session:
    return Session(FakeCredentialStore())


def test_validate_signup_rules() -> None:
    assert validate_signup(" Ada ", "ada@x.io", "12345678") == ("Ada", "ada@x.io", "12345678")
    with pytest.raises(InvalidInput):
        validate_signup("A", "ada@x.io", "12345678")
    with pytest.raises(InvalidInput):
        validate_signup("Ada", "ada@x.io", "short")
    with pytest.raises(InvalidInput):
        validate_signup("Ada", "ada@x.io", "thirteenchars")


def test_validate_otp_requires_four_digits() -> None:
    assert validate_otp(" 0420 ") == "0420"
    for bad in ("123", "12345", "12a4", ""):
        with pytest.raises(InvalidInput):
            validate_otp(bad)


@pytest.mark.asyncio
async def test_login_signs_session_in(signed_out) -> None:
    auth = AuthStore(FakeAuthGateway(token="tok-9"), signed_out)

    assert await auth.login(" ada@x.io ", "secret123")

    assert signed_out.token == "tok-9"
    assert signed_out.state.user.full_name == "Ada Lovelace"


@pytest.mark.asyncio
async def test_login_failure_keeps_session_signed_out(signed_out) -> None:
    gateway = FakeAuthGateway()
    gateway.fail_with["login"] = InvalidRequest("Invalid credentials")
    auth = AuthStore(gateway, signed_out)

    assert not await auth.login("ada@x.io", "wrong")

    assert not signed_out.is_authenticated
    assert auth.state.error_message == "Invalid credentials"


@pytest.mark.asyncio
async def test_blank_login_is_rejected_locally(signed_out) -> None:
    gateway = FakeAuthGateway()
    auth = AuthStore(gateway, signed_out)

    assert not await auth.login("", "")
    assert auth.state.error_message == "Email and password are required."
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_signup_then_verify(signed_out) -> None:
    gateway = FakeAuthGateway()
    auth = AuthStore(gateway, signed_out)

    assert await auth.signup("Ada Lovelace", "ada@x.io", "secret123")
    assert not signed_out.is_authenticated

    assert await auth.verify("ada@x.io", "1234")
    assert signed_out.is_authenticated


@pytest.mark.asyncio
async def test_password_reset_flow(signed_out) -> None:
    gateway = FakeAuthGateway()
    auth = AuthStore(gateway, signed_out)

    assert await auth.send_password_reset_otp("ada@x.io")
    assert await auth.confirm_password_reset_otp("ada@x.io", "1234")
    assert not await auth.reset_password("ada@x.io", "1234", "abc")
    assert auth.state.error_message == "Password must be at least 6 characters."
    assert await auth.reset_password("ada@x.io", "1234", "abcdef")

    assert signed_out.is_authenticated
    assert await auth.resend_otp("ada@x.io", OtpPurpose.PASSWORD_RESET)
    assert gateway.called("resend_otp") == [("ada@x.io", 1)]


@pytest.mark.asyncio
async def test_logout_clears_credentials(session, credentials) -> None:
    auth = AuthStore(FakeAuthGateway(), session)

    auth.logout()

    assert not session.is_authenticated
    assert credentials.saved is None
    with pytest.raises(Unauthorized):
        session.require_token()


def test_invalidate_is_idempotent(session, credentials) -> None:
    session.invalidate()
    session.invalidate()
    assert credentials.cleared == 1


def test_restore_uses_stored_token() -> None:
    creds = FakeCredentialStore(saved=("tok-7", None))
    session = Session(creds)

    assert session.restore()
    assert session.require_token() == "tok-7"


def test_file_credential_store_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "creds" / "credentials.json"
    store = FileCredentialStore(path)
    user = AuthUser(user_id="u1", initials="AL", full_name="Ada Lovelace")

    assert store.load() is None
    store.save("tok-1", user)

    assert json.loads(path.read_text("utf-8"))["token"] == "tok-1"
    assert (path.stat().st_mode & 0o777) == 0o600
    assert store.load() == ("tok-1", user)

    store.clear()
    store.clear()
    assert store.load() is None


def test_file_credential_store_ignores_garbage(tmp_path: Path) -> None:
    path = tmp_path / "credentials.json"
    path.write_text("{not json", "utf-8")

    assert FileCredentialStore(path).load() is None
