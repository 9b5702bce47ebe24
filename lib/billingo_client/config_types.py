from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields
from typing import Any

from .errors import ConfigurationError

DEFAULT_HOST = "https://www.billingo.hu/api/"
DEFAULT_LOG_MSG_FORMATS = (
    "{method} {uri} HTTP/{version} {req_body}",
    "RESPONSE: {code} - {res_body}",
)
REQUIRED_OPTIONS = ("host", "private_key", "public_key", "version", "leeway")


@dataclass(frozen=True)
class ClientConfig:
    host: str
    private_key: str
    public_key: str
    version: str = "2"
    leeway: int = 60
    log_dir: str = ""
    log_msg_formats: tuple[str, ...] = DEFAULT_LOG_MSG_FORMATS
    syslog: bool = False
    syslog_address: str = "localhost:514"
    remote_log_url: str | None = None
    loggly_token: str | None = None
    algorithm: str = "HS256"
    # Certificate verification can only be switched off explicitly.
    verify_tls: bool = True
    timeout_s: float | None = 15.0

    @property
    def logging_enabled(self) -> bool:
        return bool(self.log_dir)


_KNOWN_OPTIONS = {f.name for f in fields(ClientConfig)}
# Older option names still accepted, mapped to their current name.
OPTION_ALIASES = {"log_msg_format": "log_msg_formats"}


def _required_str(opts: Mapping[str, Any], name: str) -> str:
    value = opts.get(name)
    if value is None:
        raise ConfigurationError(f"missing required option: {name}")
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"option {name} must be a non-empty string")
    return value


def _optional_str(opts: Mapping[str, Any], name: str) -> str | None:
    value = opts.get(name)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"option {name} must be a string")
    return value


def _flag(opts: Mapping[str, Any], name: str, default: bool) -> bool:
    value = opts.get(name, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"option {name} must be a boolean")
    return value


def _version(opts: Mapping[str, Any]) -> str:
    value = opts.get("version", "2")
    if value is None:
        raise ConfigurationError("missing required option: version")
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ConfigurationError("option version must be a string")
    value = str(value).strip()
    if not value:
        raise ConfigurationError("option version must be a non-empty string")
    return value


def _leeway(opts: Mapping[str, Any]) -> int:
    value = opts.get("leeway", 60)
    if value is None:
        raise ConfigurationError("missing required option: leeway")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError("option leeway must be an integer number of seconds")
    if value < 0:
        raise ConfigurationError("option leeway must not be negative")
    return value


def _log_dir(opts: Mapping[str, Any]) -> str:
    value = opts.get("log_dir", "")
    if value is None:
        return ""
    if isinstance(value, os.PathLike):
        return os.fspath(value)
    if not isinstance(value, str):
        raise ConfigurationError("option log_dir must be a path")
    return value


def _log_msg_formats(opts: Mapping[str, Any]) -> tuple[str, ...]:
    value = opts.get("log_msg_formats", DEFAULT_LOG_MSG_FORMATS)
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise ConfigurationError("option log_msg_formats must be a list of strings")
    if not all(isinstance(item, str) for item in value):
        raise ConfigurationError("option log_msg_formats must be a list of strings")
    return tuple(value)


def _timeout(opts: Mapping[str, Any]) -> float | None:
    value = opts.get("timeout_s", 15.0)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigurationError("option timeout_s must be a positive number")
    return float(value)


def _apply_aliases(opts: Mapping[str, Any]) -> dict[str, Any]:
    resolved = dict(opts)
    for old, new in OPTION_ALIASES.items():
        if old not in resolved:
            continue
        if new in resolved:
            raise ConfigurationError(f"options {old} and {new} are the same setting, pass only {new}")
        resolved[new] = resolved.pop(old)
    return resolved


def resolve_options(opts: Mapping[str, Any]) -> ClientConfig:
    """Validate raw client options and fill in defaults."""
    if isinstance(opts, ClientConfig):
        return opts
    if not isinstance(opts, Mapping):
        raise ConfigurationError("client options must be a mapping")

    opts = _apply_aliases(opts)
    unknown = sorted(set(opts) - _KNOWN_OPTIONS)
    if unknown:
        raise ConfigurationError(f"unknown option(s): {', '.join(unknown)}")

    algorithm = opts.get("algorithm", "HS256")
    if not isinstance(algorithm, str) or not algorithm:
        raise ConfigurationError("option algorithm must be a non-empty string")
    if algorithm.lower() == "none":
        raise ConfigurationError("option algorithm must name a signing algorithm, not 'none'")

    syslog_address = opts.get("syslog_address", "localhost:514")
    if not isinstance(syslog_address, str) or not syslog_address:
        raise ConfigurationError("option syslog_address must be a non-empty string")

    return ClientConfig(
        host=_required_str(opts, "host"),
        private_key=_required_str(opts, "private_key"),
        public_key=_required_str(opts, "public_key"),
        version=_version(opts),
        leeway=_leeway(opts),
        log_dir=_log_dir(opts),
        log_msg_formats=_log_msg_formats(opts),
        syslog=_flag(opts, "syslog", False),
        syslog_address=syslog_address,
        remote_log_url=_optional_str(opts, "remote_log_url"),
        loggly_token=_optional_str(opts, "loggly_token"),
        algorithm=algorithm,
        verify_tls=_flag(opts, "verify_tls", True),
        timeout_s=_timeout(opts),
    )
