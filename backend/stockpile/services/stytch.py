"""Stytch client for SMS one-time codes and OAuth sign-in.

The client is constructed explicitly with its own ``httpx.Client`` and handed
to the application, so tests can swap it for a fake or a mock transport.
"""
from dataclasses import dataclass
import logging
from typing import Any, Protocol

import httpx

from stockpile.config import Settings
from stockpile.errors import RateLimitedError, UpstreamError

logger = logging.getLogger(__name__)

# Responses meaning "the code/token was not accepted" rather than "Stytch is broken"
REJECTED_STATUS_CODES = {400, 401, 404}


@dataclass(frozen=True)
class VerifiedPhone:
    phone_number: str


@dataclass(frozen=True)
class ProviderIdentity:
    provider_name: str
    provider_id: str
    email: str | None = None


class IdentityProvider(Protocol):
    """What the auth endpoints need from a one-time-code/OAuth provider."""

    def send_sms_code(self, phone_number: str) -> str:
        """Send a code and return the method id to verify it against."""
        ...

    def verify_code(self, method_id: str, code: str) -> VerifiedPhone | None:
        ...

    def authenticate_oauth(self, token: str) -> ProviderIdentity | None:
        ...


class StytchClient:
    """IdentityProvider backed by the Stytch consumer API."""

    def __init__(self, http: httpx.Client, otp_expiration_minutes: int = 5) -> None:
        self.http = http
        self.otp_expiration_minutes = otp_expiration_minutes

    @classmethod
    def from_settings(cls, settings: Settings) -> "StytchClient":
        http = httpx.Client(
            base_url=settings.stytch_base_url,
            auth=(settings.stytch_project_id, settings.stytch_secret),
            timeout=settings.stytch_timeout_seconds,
        )
        return cls(http, otp_expiration_minutes=settings.otp_expiration_minutes)

    def close(self) -> None:
        self.http.close()

    def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        try:
            response = self.http.post(path, json=payload)
        except httpx.HTTPError as exc:
            logger.error(f"Stytch request to {path} failed: {exc}")
            raise UpstreamError("Identity provider unavailable") from exc

        if response.status_code == 429:
            raise RateLimitedError("Too many verification attempts, try again later")
        if response.status_code >= 500:
            logger.error(f"Stytch returned {response.status_code} for {path}")
            raise UpstreamError("Identity provider unavailable")
        return response

    def send_sms_code(self, phone_number: str) -> str:
        response = self._post(
            "otps/sms/login_or_create",
            {"phone_number": phone_number, "expiration_minutes": self.otp_expiration_minutes},
        )
        if response.status_code != 200:
            logger.warning(f"Stytch refused to send code: {response.status_code}")
            raise UpstreamError("Could not send verification code")
        return response.json()["phone_id"]

    def verify_code(self, method_id: str, code: str) -> VerifiedPhone | None:
        response = self._post("otps/authenticate", {"method_id": method_id, "code": code})
        if response.status_code in REJECTED_STATUS_CODES:
            return None
        if response.status_code != 200:
            raise UpstreamError("Unexpected response from identity provider")

        phone_numbers = response.json().get("user", {}).get("phone_numbers", [])
        for entry in phone_numbers:
            if entry.get("phone_id") == method_id:
                return VerifiedPhone(phone_number=entry["phone_number"])
        if phone_numbers:
            return VerifiedPhone(phone_number=phone_numbers[0]["phone_number"])
        raise UpstreamError("Identity provider returned no phone number")

    def authenticate_oauth(self, token: str) -> ProviderIdentity | None:
        response = self._post("oauth/authenticate", {"token": token})
        if response.status_code in REJECTED_STATUS_CODES:
            return None
        if response.status_code != 200:
            raise UpstreamError("Unexpected response from identity provider")

        body = response.json()
        emails = body.get("user", {}).get("emails", [])
        return ProviderIdentity(
            provider_name=body["provider_type"],
            provider_id=body["provider_subject"],
            email=emails[0]["email"] if emails else None,
        )
