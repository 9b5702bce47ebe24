from __future__ import annotations

import os
import sys
import tomllib
from dataclasses import dataclass
from typing import Any

import tomli_w
from platformdirs import user_config_dir

from billingo_client.config_types import DEFAULT_HOST

from . import console

APP_NAME = "billingo"
CONFIG_FILENAME = "config.toml"
ENV_HOST = "BILLINGO_HOST"
ENV_PUBLIC_KEY = "BILLINGO_PUBLIC_KEY"
ENV_PRIVATE_KEY = "BILLINGO_PRIVATE_KEY"

_WARNED_HOST_SCHEME = False


@dataclass
class LogConfig:
    log_dir: str = ""
    syslog: bool = False
    syslog_address: str = "localhost:514"
    remote_log_url: str = ""
    loggly_token: str = ""


@dataclass
class AppConfig:
    host: str
    public_key: str = ""
    private_key: str = ""
    version: str = "2"
    leeway: int = 60
    algorithm: str = "HS256"
    verify_tls: bool = True
    timeout_s: float = 15.0
    log: LogConfig | None = None


def config_path() -> str:
    return f"{user_config_dir(APP_NAME)}/{CONFIG_FILENAME}"


def default_config() -> AppConfig:
    return AppConfig(host=DEFAULT_HOST, log=LogConfig())


def normalize_host(raw: str | None, *, warn: bool = False) -> str:
    value = (raw or "").strip()
    if not value:
        return ""
    lowered = value.lower()
    if lowered.startswith("http://") or lowered.startswith("https://"):
        normalized = value
    else:
        host = value.split("/", 1)[0].split(":", 1)[0].lower()
        scheme = "http://" if host in {"localhost", "127.0.0.1", "0.0.0.0"} else "https://"
        normalized = f"{scheme}{value}"
        if warn:
            _warn_missing_scheme(normalized)
    # relative API paths are joined onto the host, so keep exactly one trailing slash
    return normalized.rstrip("/") + "/"


def _warn_missing_scheme(normalized: str) -> None:
    global _WARNED_HOST_SCHEME
    if _WARNED_HOST_SCHEME:
        return
    if not (sys.stderr.isatty() or sys.stdout.isatty()):
        return
    console.warn(f"host missing scheme, assuming {normalized}")
    _WARNED_HOST_SCHEME = True


def to_toml(cfg: AppConfig) -> dict[str, Any]:
    log = cfg.log or LogConfig()
    return {
        "host": cfg.host,
        "public_key": cfg.public_key,
        "private_key": cfg.private_key,
        "version": cfg.version,
        "leeway": cfg.leeway,
        "algorithm": cfg.algorithm,
        "verify_tls": cfg.verify_tls,
        "timeout_s": cfg.timeout_s,
        "log": {
            "log_dir": log.log_dir,
            "syslog": log.syslog,
            "syslog_address": log.syslog_address,
            "remote_log_url": log.remote_log_url,
            "loggly_token": log.loggly_token,
        },
    }


def from_toml(data: dict[str, Any]) -> AppConfig:
    cfg = default_config()
    host = normalize_host(str(data.get("host") or ""), warn=True)
    if host:
        cfg.host = host
    cfg.public_key = str(data.get("public_key") or "")
    cfg.private_key = str(data.get("private_key") or "")
    cfg.version = str(data.get("version") or cfg.version)
    cfg.algorithm = str(data.get("algorithm") or cfg.algorithm)
    try:
        cfg.leeway = int(data.get("leeway", cfg.leeway))
    except (TypeError, ValueError):
        console.warn("ignoring invalid leeway in config")
    try:
        cfg.timeout_s = float(data.get("timeout_s", cfg.timeout_s))
    except (TypeError, ValueError):
        console.warn("ignoring invalid timeout_s in config")
    verify = data.get("verify_tls")
    if isinstance(verify, bool):
        cfg.verify_tls = verify

    log_raw = data.get("log") or {}
    if isinstance(log_raw, dict):
        cfg.log = LogConfig(
            log_dir=str(log_raw.get("log_dir") or ""),
            syslog=log_raw.get("syslog") is True,
            syslog_address=str(log_raw.get("syslog_address") or "localhost:514"),
            remote_log_url=str(log_raw.get("remote_log_url") or ""),
            loggly_token=str(log_raw.get("loggly_token") or ""),
        )
    return cfg


def load_config() -> AppConfig:
    path = config_path()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
        cfg = from_toml(data)
    except FileNotFoundError:
        cfg = default_config()
    return apply_env(cfg)


def apply_env(cfg: AppConfig) -> AppConfig:
    host = os.getenv(ENV_HOST, "").strip()
    if host:
        cfg.host = normalize_host(host)
    public_key = os.getenv(ENV_PUBLIC_KEY, "").strip()
    if public_key:
        cfg.public_key = public_key
    private_key = os.getenv(ENV_PRIVATE_KEY, "").strip()
    if private_key:
        cfg.private_key = private_key
    return cfg


def client_options(cfg: AppConfig, *, host_override: str | None = None) -> dict[str, Any]:
    """Translate the CLI config into options for billingo_client."""
    log = cfg.log or LogConfig()
    return {
        "host": normalize_host(host_override, warn=True) if host_override else cfg.host,
        "public_key": cfg.public_key,
        "private_key": cfg.private_key,
        "version": cfg.version,
        "leeway": cfg.leeway,
        "algorithm": cfg.algorithm,
        "verify_tls": cfg.verify_tls,
        "timeout_s": cfg.timeout_s,
        "log_dir": log.log_dir,
        "syslog": log.syslog,
        "syslog_address": log.syslog_address,
        "remote_log_url": log.remote_log_url or None,
        "loggly_token": log.loggly_token or None,
    }


def save_config(cfg: AppConfig) -> str:
    path = config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(tomli_w.dumps(to_toml(cfg)).encode("utf-8"))
    os.chmod(path, 0o600)
    return path
