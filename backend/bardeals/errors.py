# backend/bardeals/errors.py
"""Errors that map directly onto an HTTP status and a client-safe message."""

from __future__ import annotations


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequest(ApiError):
    status_code = 400


class Unauthorized(ApiError):
    status_code = 401


class NotFound(ApiError):
    status_code = 404


class ConfigurationError(ApiError):
    status_code = 500


REQUIRED_FIELDS_MESSAGE = "name, type, start_time are required"


class MissingFields(BadRequest):
    def __init__(self, message: str = REQUIRED_FIELDS_MESSAGE):
        super().__init__(message)
