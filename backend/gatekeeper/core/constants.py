"""Shared constants and enums used across the application."""

from enum import StrEnum


class HTTPMethod(StrEnum):
    """HTTP request methods understood by the pipeline."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    CONNECT = "CONNECT"


class Environment(StrEnum):
    """Deployment environments recognised by APP_ENV."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


# ─── Wire contract: fixed response bodies ────────────────
UNEXPECTED_ERROR_MESSAGE = "an unexpected error occurred"
AUTHENTICATION_DENIED_MESSAGE = "Access denied: authenticated = false"
AUTHORIZATION_DENIED_MESSAGE = "Access denied: only authrized personal can update the data"
NOT_FOUND_MESSAGE = "Sorry we couldn't find that page"

# ─── Placeholder trust signals ───────────────────────────
AUTHENTICATED_QUERY_FLAG = "authenticated"
AUTHORIZED_QUERY_FLAG = "authorized"

CONTENT_TYPE_JSON = "application/json; charset=utf-8"
CONTENT_TYPE_TEXT = "text/plain; charset=utf-8"
