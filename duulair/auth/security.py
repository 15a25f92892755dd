# -*- coding: utf-8 -*-
"""Auth: FastAPI helpers for resolving the calling LINE user."""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from ..errors import Unauthenticated, UpstreamUnavailable
from .line import IdentityProviderError, TokenVerifier
from .models import LineProfile

LIFF_TOKEN_HEADER = "x-liff-access-token"


def get_token_from_request(request: Request) -> Optional[str]:
    header = request.headers.get(LIFF_TOKEN_HEADER)
    if header and header.strip():
        return header.strip()
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        token = auth.split(" ", 1)[1].strip()
        return token or None
    return None


async def get_current_profile(request: Request) -> LineProfile:
    # Reuse the profile if another dependency already resolved it.
    profile = getattr(request.state, "line_profile", None)
    if profile:
        return profile

    token = get_token_from_request(request)
    if not token:
        raise Unauthenticated("Missing LIFF access token")

    verifier: TokenVerifier = request.app.state.token_verifier
    try:
        profile = await verifier.verify(token)
    except IdentityProviderError as exc:
        raise UpstreamUnavailable("Identity provider unavailable") from exc
    if profile is None:
        raise Unauthenticated("Invalid LIFF token")

    request.state.line_profile = profile
    return profile
