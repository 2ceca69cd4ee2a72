"""
Google identity verification.

Exchanges a Google ID token for a verified profile using Google's tokeninfo
endpoint. The orchestrator only ever sees the resulting GoogleProfile.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from core.config import Settings
from core.exceptions import GoogleAuthDisabledError, InvalidGoogleTokenError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoogleProfile:
    """Verified identity returned by the provider."""

    subject: str
    email: str
    name: str
    picture: str | None = None


class IdentityVerifier(Protocol):
    async def verify(self, id_token: str) -> GoogleProfile: ...


class GoogleIdentityVerifier:
    """
    Verifies Google ID tokens through the tokeninfo endpoint.

    A token is accepted only when Google returns 200, the audience is our
    client id and the email is verified.

    Args:
        settings: Application settings (client id, endpoint, timeout)
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = settings.google_client_id
        self.tokeninfo_url = settings.google_tokeninfo_url
        self.timeout = settings.google_timeout_seconds
        self.transport = transport

    async def verify(self, id_token: str) -> GoogleProfile:
        """
        Verify an ID token and return the profile it vouches for.

        Raises:
            GoogleAuthDisabledError: No client id configured
            InvalidGoogleTokenError: Google rejected the token or a claim is off
            httpx.HTTPError: Google unreachable or answered with a server error
        """
        if not self.client_id:
            raise GoogleAuthDisabledError()

        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=False,
            transport=self.transport,
        ) as client:
            response = await client.get(
                self.tokeninfo_url,
                params={"id_token": id_token},
                headers={"Accept": "application/json"},
            )

        if response.status_code == 400:
            logger.warning("Google rejected ID token")
            raise InvalidGoogleTokenError()
        response.raise_for_status()

        claims = response.json()
        if claims.get("aud") != self.client_id:
            logger.warning(f"Google ID token audience mismatch: {claims.get('aud')}")
            raise InvalidGoogleTokenError()

        # tokeninfo returns booleans as strings
        if str(claims.get("email_verified", "")).lower() != "true":
            raise InvalidGoogleTokenError("Google account email is not verified")

        subject = claims.get("sub")
        email = claims.get("email")
        if not subject or not email:
            raise InvalidGoogleTokenError()

        return GoogleProfile(
            subject=str(subject),
            email=str(email),
            name=claims.get("name") or str(email).split("@")[0],
            picture=claims.get("picture"),
        )
