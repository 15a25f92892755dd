# -*- coding: utf-8 -*-
"""Auth: Pydantic models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class LineProfile(BaseModel):
    user_id: str
    display_name: str = ""
    picture_url: Optional[str] = None
