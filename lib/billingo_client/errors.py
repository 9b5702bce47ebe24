from __future__ import annotations


class BillingoClientError(Exception):
    """Base client error."""


class ConfigurationError(BillingoClientError):
    """Missing or invalid client option."""


class SigningError(BillingoClientError):
    """The auth token could not be signed with the configured key."""


class NetworkError(BillingoClientError):
    """Transport/network layer error."""


class ParseError(BillingoClientError):
    def __init__(self, message: str, body: str):
        super().__init__(message)
        self.body = body


class RequestError(BillingoClientError):
    def __init__(self, message: str | None, status_code: int):
        super().__init__(message or f"request failed with status {status_code}")
        self.message = message
        self.status_code = status_code
