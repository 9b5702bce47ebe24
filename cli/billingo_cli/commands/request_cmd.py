from __future__ import annotations

import json
from typing import Any

import typer

from .. import console
from ..config import load_config
from ..http import api_errors, make_client


def _parse_query(pairs: list[str] | None) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            console.err(f"Invalid query parameter '{pair}', expected key=value.")
            raise typer.Exit(code=2)
        params[key.strip()] = value
    return params


def _parse_body(raw: str | None) -> Any:
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError as e:
        console.err(f"--data is not valid JSON: {e}")
        raise typer.Exit(code=2)


def _print_result(result: Any, *, json_out: bool) -> None:
    if json_out or not isinstance(result, dict):
        console.print_json(result)
        return
    if not result:
        console.ok("Done.")
        return
    for key, value in result.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, ensure_ascii=False)
        console.print(f"{key}: {value}")


def _run(method: str, path: str, payload: Any, *, host: str | None, json_out: bool) -> None:
    cfg = load_config()
    with api_errors():
        with make_client(cfg, host_override=host) as client:
            result = client.request(method, path, payload)
    _print_result(result, json_out=json_out)


def get(
        path: str = typer.Argument(..., help="API path, relative to the host (e.g. invoices)."),
        query: list[str] | None = typer.Option(None, "-q", "--query", help="Query parameter key=value."),
        host: str | None = typer.Option(None, "--host", help="Override API host."),
        json_out: bool = typer.Option(False, "--json", help="Print raw JSON."),
) -> None:
    """GET a resource."""
    _run("GET", path, _parse_query(query), host=host, json_out=json_out)


def delete(
        path: str = typer.Argument(..., help="API path, relative to the host."),
        query: list[str] | None = typer.Option(None, "-q", "--query", help="Query parameter key=value."),
        host: str | None = typer.Option(None, "--host", help="Override API host."),
        json_out: bool = typer.Option(False, "--json", help="Print raw JSON."),
) -> None:
    """DELETE a resource."""
    _run("DELETE", path, _parse_query(query), host=host, json_out=json_out)


def post(
        path: str = typer.Argument(..., help="API path, relative to the host."),
        data: str | None = typer.Option(None, "--data", help="JSON request body."),
        host: str | None = typer.Option(None, "--host", help="Override API host."),
        json_out: bool = typer.Option(False, "--json", help="Print raw JSON."),
) -> None:
    """POST a JSON body."""
    _run("POST", path, _parse_body(data), host=host, json_out=json_out)


def put(
        path: str = typer.Argument(..., help="API path, relative to the host."),
        data: str | None = typer.Option(None, "--data", help="JSON request body."),
        host: str | None = typer.Option(None, "--host", help="Override API host."),
        json_out: bool = typer.Option(False, "--json", help="Print raw JSON."),
) -> None:
    """PUT a JSON body."""
    _run("PUT", path, _parse_body(data), host=host, json_out=json_out)


def token(
        issuer: str | None = typer.Option(None, "--issuer", help="Value for the iss claim."),
) -> None:
    """Print a freshly signed Authorization header value."""
    cfg = load_config()
    with api_errors():
        with make_client(cfg) as client:
            header = client.auth_header(issuer_hint=issuer)
    typer.echo(header)
