from __future__ import annotations

import typer

from .. import console
from ..config import LogConfig, load_config, normalize_host, save_config

app = typer.Typer(help="Show or change the local client configuration.")


def _mask(value: str) -> str:
    if not value:
        return "(empty)"
    if len(value) <= 8:
        return "(set)"
    return f"{value[:4]}…{value[-4:]}"


@app.command("show")
def show_config() -> None:
    cfg = load_config()
    log = cfg.log or LogConfig()
    console.print(f"host={cfg.host}")
    console.print(f"public_key={_mask(cfg.public_key)} private_key={'(set)' if cfg.private_key else '(empty)'}")
    console.print(f"version={cfg.version} leeway={cfg.leeway} algorithm={cfg.algorithm}")
    console.print(f"verify_tls={cfg.verify_tls} timeout_s={cfg.timeout_s}")
    console.print(f"log_dir={log.log_dir or '(disabled)'} syslog={log.syslog}")
    if not cfg.verify_tls:
        console.warn("TLS certificate verification is disabled.")


@app.command("set")
def set_config(
        host: str | None = typer.Option(None, "--host", help="API base URL."),
        public_key: str | None = typer.Option(None, "--public-key", help="API public key."),
        private_key: str | None = typer.Option(None, "--private-key", help="API private key."),
        api_version: str | None = typer.Option(None, "--api-version", help="API version."),
        leeway: int | None = typer.Option(None, "--leeway", min=0, help="Token clock-skew leeway in seconds."),
        log_dir: str | None = typer.Option(None, "--log-dir", help="Directory for request logs ('' disables)."),
        verify_tls: bool | None = typer.Option(
            None,
            "--verify-tls/--insecure",
            help="Verify TLS certificates (on by default).",
        ),
) -> None:
    cfg = load_config()
    if cfg.log is None:
        cfg.log = LogConfig()

    if host is not None:
        cfg.host = normalize_host(host, warn=True)
    if public_key is not None:
        cfg.public_key = public_key.strip()
    if private_key is not None:
        cfg.private_key = private_key.strip()
    if api_version is not None:
        cfg.version = api_version.strip()
    if leeway is not None:
        cfg.leeway = leeway
    if log_dir is not None:
        cfg.log.log_dir = log_dir.strip()
    if verify_tls is not None:
        cfg.verify_tls = verify_tls
        if not verify_tls:
            console.warn("TLS certificate verification disabled. Only use this against a trusted host.")

    path = save_config(cfg)
    console.ok(f"Config updated: {path}")
