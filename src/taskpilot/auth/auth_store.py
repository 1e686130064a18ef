# src/taskpilot/auth/auth_store.py

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace

from ..api.auth_api import OtpPurpose
from ..core.errors import InvalidInput, TaskPilotError, friendly_error_message
from ..core.models import AuthResponse
from ..core.ports import AuthGateway
from ..core.session import Session
from ..core.state import StateStore

logger = logging.getLogger(__name__)

_OTP = re.compile(r"^\d{4}$")


def validate_login(email: str, password: str) -> tuple[str, str]:
    clean_email = (email or "").strip()
    if not clean_email or not (password or "").strip():
        raise InvalidInput("Email and password are required.")
    return clean_email, password


def validate_signup(full_name: str, email: str, password: str) -> tuple[str, str, str]:
    name = (full_name or "").strip()
    if len(name) < 2:
        raise InvalidInput("Full name must be at least 2 characters.")
    clean_email = (email or "").strip()
    if not clean_email:
        raise InvalidInput("Email is required.")
    if not 8 <= len(password or "") <= 12:
        raise InvalidInput("Password must be 8 to 12 characters.")
    return name, clean_email, password


def validate_otp(otp: str) -> str:
    clean = (otp or "").strip()
    if not _OTP.match(clean):
        raise InvalidInput("Enter the 4-digit code.")
    return clean


def validate_new_password(password: str) -> str:
    if len(password or "") < 6:
        raise InvalidInput("Password must be at least 6 characters.")
    return password


@dataclass(frozen=True, slots=True)
class AuthState:
    is_loading: bool = False
    error_message: str | None = None


class AuthStore:
    """Login / signup / password-reset flows. Successful auth signs the Session in."""

    def __init__(self, gateway: AuthGateway, session: Session) -> None:
        self._gateway = gateway
        self._session = session
        self.store: StateStore[AuthState] = StateStore(AuthState())

    @property
    def state(self) -> AuthState:
        return self.store.snapshot

    @property
    def session(self) -> Session:
        return self._session

    def _begin(self) -> None:
        self.store.set(AuthState(is_loading=True))

    def _fail(self, err: BaseException) -> bool:
        msg = friendly_error_message(err)
        logger.info("Auth action failed: %s", msg)
        self.store.set(AuthState(error_message=msg))
        return False

    def _done(self) -> bool:
        self.store.update(lambda s: replace(s, is_loading=False))
        return True

    def _signed_in(self, response: AuthResponse) -> bool:
        self._session.sign_in(response.token, response.user)
        return self._done()

    async def login(self, email: str, password: str) -> bool:
        self._begin()
        try:
            clean_email, password = validate_login(email, password)
            response = await self._gateway.login(email=clean_email, password=password)
        except TaskPilotError as e:
            return self._fail(e)
        return self._signed_in(response)

    async def signup(self, full_name: str, email: str, password: str) -> bool:
        """Create the account; the user still has to verify the emailed OTP."""
        self._begin()
        try:
            name, clean_email, password = validate_signup(full_name, email, password)
            await self._gateway.signup(full_name=name, email=clean_email, password=password)
        except TaskPilotError as e:
            return self._fail(e)
        return self._done()

    async def verify(self, email: str, otp: str) -> bool:
        self._begin()
        try:
            code = validate_otp(otp)
            response = await self._gateway.verify(email=email.strip(), otp=code)
        except TaskPilotError as e:
            return self._fail(e)
        return self._signed_in(response)

    async def send_password_reset_otp(self, email: str) -> bool:
        self._begin()
        try:
            clean_email = (email or "").strip()
            if not clean_email:
                raise InvalidInput("Email is required.")
            await self._gateway.send_reset_otp(email=clean_email)
        except TaskPilotError as e:
            return self._fail(e)
        return self._done()

    async def confirm_password_reset_otp(self, email: str, otp: str) -> bool:
        self._begin()
        try:
            code = validate_otp(otp)
            await self._gateway.confirm_reset_otp(email=email.strip(), otp=code)
        except TaskPilotError as e:
            return self._fail(e)
        return self._done()

    async def reset_password(self, email: str, otp: str, new_password: str) -> bool:
        self._begin()
        try:
            code = validate_otp(otp)
            password = validate_new_password(new_password)
            response = await self._gateway.reset_password(
                email=email.strip(), otp=code, new_password=password
            )
        except TaskPilotError as e:
            return self._fail(e)
        return self._signed_in(response)

    async def resend_otp(self, email: str, purpose: OtpPurpose = OtpPurpose.SIGNUP) -> bool:
        self._begin()
        try:
            await self._gateway.resend_otp(email=email.strip(), otp_purpose=int(purpose))
        except TaskPilotError as e:
            return self._fail(e)
        return self._done()

    def logout(self) -> None:
        self._session.invalidate()
        self.store.set(AuthState())
