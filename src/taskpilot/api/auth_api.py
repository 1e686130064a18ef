# src/taskpilot/api/auth_api.py

from __future__ import annotations

from enum import IntEnum

from ..core.models import AuthResponse
from .http import ApiTransport


class OtpPurpose(IntEnum):
    SIGNUP = 0
    PASSWORD_RESET = 1


class AuthApi:
    """Unauthenticated account endpoints. None of these take a bearer token."""

    prefix = "/auth/taskuserauth"

    def __init__(self, transport: ApiTransport) -> None:
        self._http = transport

    async def login(self, *, email: str, password: str) -> AuthResponse:
        return await self._http.request_model(
            "POST",
            f"{self.prefix}/login",
            AuthResponse.from_json,
            json_body={"email": email, "password": password},
        )

    async def signup(self, *, full_name: str, email: str, password: str) -> None:
        await self._http.request(
            "POST",
            f"{self.prefix}/signup",
            json_body={"fullName": full_name, "email": email, "password": password},
        )

    async def verify(self, *, email: str, otp: str) -> AuthResponse:
        return await self._http.request_model(
            "POST",
            f"{self.prefix}/verify",
            AuthResponse.from_json,
            json_body={"email": email, "otp": otp},
        )

    async def send_reset_otp(self, *, email: str) -> None:
        await self._http.request("POST", f"{self.prefix}/send-reset-otp", json_body={"email": email})

    async def confirm_reset_otp(self, *, email: str, otp: str) -> None:
        await self._http.request(
            "POST",
            f"{self.prefix}/confirm-reset-otp",
            json_body={"email": email, "otp": otp},
        )

    async def reset_password(self, *, email: str, otp: str, new_password: str) -> AuthResponse:
        return await self._http.request_model(
            "POST",
            f"{self.prefix}/reset",
            AuthResponse.from_json,
            json_body={"email": email, "otp": otp, "newPassword": new_password},
        )

    async def resend_otp(self, *, email: str, otp_purpose: int) -> None:
        await self._http.request(
            "POST",
            f"{self.prefix}/resend-otp",
            json_body={"email": email, "otpPurpose": int(otp_purpose)},
        )
