from .client import APIClient, BillingoClient
from .config_types import ClientConfig, resolve_options
from .errors import (
    BillingoClientError,
    ConfigurationError,
    NetworkError,
    ParseError,
    RequestError,
    SigningError,
)

__all__ = [
    "APIClient",
    "BillingoClient",
    "ClientConfig",
    "resolve_options",
    "BillingoClientError",
    "ConfigurationError",
    "NetworkError",
    "ParseError",
    "RequestError",
    "SigningError",
]
