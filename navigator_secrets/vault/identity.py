"""
Identity Resolver — Bearer credential validation against the auth service.

Every call performs one round-trip to ``GET {auth_url}/auth/v1/user``
(Supabase GoTrue compatible). Nothing is cached: each request re-resolves.

Security Note:
    Never log bearer tokens. Only log identity ids and HTTP statuses.
"""
import asyncio
import logging
from typing import Optional

import aiohttp
from pydantic import BaseModel

from ..exceptions import Unauthenticated

logger = logging.getLogger("navigator.vault")

USER_ENDPOINT = "/auth/v1/user"


class CallerIdentity(BaseModel):
    """Server-verified principal on whose behalf vault operations run."""

    id: str
    email: Optional[str] = None
    role: Optional[str] = None

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return self.id


def parse_bearer(credential: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` value.

    Raises:
        Unauthenticated: If the credential is missing or malformed.
    """
    if not credential:
        raise Unauthenticated("Missing authorization credential")
    scheme, _, token = credential.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise Unauthenticated("Malformed authorization credential")
    return token


class IdentityResolver:
    """Resolves bearer credentials into CallerIdentity objects.

    Args:
        client: Shared aiohttp ClientSession (owned by the application).
        auth_url: Base URL of the authentication service.
        api_key: Service api key sent as the ``apikey`` header.
        timeout: Total timeout (seconds) for the authentication round-trip.
    """

    def __init__(
        self,
        client: aiohttp.ClientSession,
        auth_url: str,
        api_key: str = "",
        timeout: float = 10.0,
    ):
        self._client = client
        self._url = auth_url.rstrip("/") + USER_ENDPOINT
        self._api_key = api_key
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def resolve(self, credential: Optional[str]) -> CallerIdentity:
        """Validate ``credential`` and return the caller identity.

        Raises:
            Unauthenticated: Missing/malformed credential, rejection by the
                auth service, or the auth service being unreachable.
        """
        token = parse_bearer(credential)
        headers = {"Authorization": f"Bearer {token}"}
        if self._api_key:
            headers["apikey"] = self._api_key
        try:
            async with self._client.get(
                self._url, headers=headers, timeout=self._timeout,
            ) as response:
                if response.status != 200:
                    logger.warning(
                        "Credential rejected by auth service (status=%s)",
                        response.status,
                    )
                    raise Unauthenticated("User not found")
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as err:
            logger.warning("Auth service unavailable: %s", type(err).__name__)
            raise Unauthenticated("Unable to verify credential") from err
        if not isinstance(payload, dict) or not payload.get("id"):
            raise Unauthenticated("User not found")
        email = payload.get("email")
        role = payload.get("role")
        identity = CallerIdentity(
            id=str(payload["id"]),
            email=email if isinstance(email, str) else None,
            role=role if isinstance(role, str) else None,
        )
        logger.debug("Resolved identity: user=%s", identity.id)
        return identity
