from __future__ import annotations

from contextlib import contextmanager

import typer
from billingo_client import BillingoClient, BillingoClientError, RequestError

from . import console
from .config import AppConfig, client_options


def make_client(cfg: AppConfig, *, host_override: str | None = None) -> BillingoClient:
    return BillingoClient(client_options(cfg, host_override=host_override))


@contextmanager
def api_errors():
    """Turn client failures into an ERR line and exit code 1."""
    try:
        yield
    except RequestError as e:
        console.err(f"{e} (HTTP {e.status_code})")
        raise typer.Exit(code=1)
    except BillingoClientError as e:
        console.err(str(e))
        raise typer.Exit(code=1)
