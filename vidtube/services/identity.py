from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import httpx
import jwt

from vidtube.config import Settings, get_settings
from vidtube.exceptions import IdentityProviderError, UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass
class ProviderProfile:
    subject_id: str
    username: str | None
    email: str | None
    first_name: str | None
    last_name: str | None
    image_url: str | None


class IdentityProvider:
    def __init__(self, settings: Settings, client: httpx.Client | None = None):
        self.settings = settings
        self.client = client or httpx.Client(
            base_url=settings.clerk_api_url.rstrip("/"),
            headers={"Authorization": f"Bearer {settings.clerk_secret_key or ''}"},
            timeout=10.0,
        )
        self._jwks_client: jwt.PyJWKClient | None = None

    @property
    def jwks_client(self) -> jwt.PyJWKClient:
        if self._jwks_client is None:
            headers = {"Authorization": f"Bearer {self.settings.clerk_secret_key or ''}"}
            self._jwks_client = jwt.PyJWKClient(self.settings.jwks_url, headers=headers)
        return self._jwks_client

    def verify_session_token(self, token: str) -> str:
        try:
            signing_key = self.jwks_client.get_signing_key_from_jwt(token)
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as exc:
            logger.info("Rejected session token: %s", exc)
            raise UnauthorizedError("Invalid or expired session") from exc

        authorized_parties = self.settings.clerk_authorized_parties
        if authorized_parties and claims.get("azp") not in authorized_parties:
            raise UnauthorizedError("Session issued for an unknown origin")
        return str(claims["sub"])

    def fetch_profile(self, subject_id: str) -> ProviderProfile:
        try:
            response = self.client.get(f"/users/{subject_id}")
            response.raise_for_status()
            payload: dict[str, Any] = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(
                "Identity provider lookup failed",
                extra={"subject_id": subject_id, "error": str(exc)},
            )
            raise IdentityProviderError(
                f"Failed to retrieve user details from authentication provider ({subject_id}). "
                "Cannot create user."
            ) from exc
        return parse_profile(subject_id, payload)


def parse_profile(subject_id: str, payload: dict[str, Any]) -> ProviderProfile:
    addresses = payload.get("email_addresses") or []
    primary_id = payload.get("primary_email_address_id")
    primary = next((item for item in addresses if item.get("id") == primary_id), None)
    if primary is None and addresses:
        primary = addresses[0]
    return ProviderProfile(
        subject_id=subject_id,
        username=payload.get("username"),
        email=primary.get("email_address") if primary else None,
        first_name=payload.get("first_name"),
        last_name=payload.get("last_name"),
        image_url=payload.get("image_url"),
    )


@lru_cache(maxsize=1)
def get_identity_provider() -> IdentityProvider:
    return IdentityProvider(get_settings())
