# -*- coding: utf-8 -*-
"""LINE access-token verification via the LINE profile API."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx

from .models import LineProfile

logger = logging.getLogger(__name__)


class IdentityProviderError(RuntimeError):
    """The LINE platform could not be reached."""


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Optional[LineProfile]: ...


class LineTokenVerifier:
    """Resolves a LIFF access token to the caller's LINE profile.

    A valid token is one the profile endpoint accepts; anything else
    (expired, revoked, forged) comes back as a non-2xx and yields ``None``.
    """

    def __init__(
        self,
        profile_url: str = "https://api.line.me/v2/profile",
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.profile_url = profile_url
        self.timeout = timeout
        self._transport = transport

    async def verify(self, token: str) -> Optional[LineProfile]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.profile_url, headers={"Authorization": f"Bearer {token}"})
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"LINE profile request failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.info("LINE profile lookup rejected token: %s %.200s", resp.status_code, resp.text)
            return None

        try:
            data = resp.json()
        except ValueError:
            logger.warning("LINE profile response was not JSON")
            return None
        user_id = str(data.get("userId") or "")
        if not user_id:
            return None
        return LineProfile(
            user_id=user_id,
            display_name=str(data.get("displayName") or ""),
            picture_url=data.get("pictureUrl"),
        )
