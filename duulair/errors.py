# -*- coding: utf-8 -*-
"""Service errors mapped to HTTP status codes by the app's exception handlers."""

from __future__ import annotations


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class RequestValidationFailed(ServiceError):
    status_code = 400


class Unauthenticated(ServiceError):
    status_code = 401


class AccessDenied(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class RateLimited(ServiceError):
    status_code = 429


class UpstreamUnavailable(ServiceError):
    status_code = 502
