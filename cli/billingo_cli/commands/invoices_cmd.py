from __future__ import annotations

import sys

import typer

from .. import console
from ..config import load_config
from ..http import api_errors, make_client

app = typer.Typer(help="Invoice commands.")


@app.command("download")
def download(
        invoice_id: int = typer.Argument(..., help="Invoice ID."),
        output: str | None = typer.Option(None, "-o", "--output", help="Target file (default: invoice-<id>.pdf)."),
        to_stdout: bool = typer.Option(False, "--stdout", help="Write the PDF to stdout."),
        host: str | None = typer.Option(None, "--host", help="Override API host."),
) -> None:
    cfg = load_config()
    if to_stdout and output:
        console.err("Use either --output or --stdout, not both.")
        raise typer.Exit(code=2)

    with api_errors():
        with make_client(cfg, host_override=host) as client:
            if to_stdout:
                body = client.download_invoice(invoice_id)
                sys.stdout.buffer.write(body.getvalue())
                sys.stdout.flush()
                return
            target = output or f"invoice-{invoice_id}.pdf"
            client.download_invoice(invoice_id, target)
    console.ok(f"Saved invoice {invoice_id} to {target}")
