from __future__ import annotations

import typer

from .commands import config_cmd, invoices_cmd, request_cmd
from .logging_ import setup_logging


def _build_app() -> typer.Typer:
    app = typer.Typer(
        name="billingo",
        help="Billingo API client",
        no_args_is_help=True,
    )

    app.add_typer(config_cmd.app, name="config")
    app.add_typer(invoices_cmd.app, name="invoices")
    app.command("get")(request_cmd.get)
    app.command("post")(request_cmd.post)
    app.command("put")(request_cmd.put)
    app.command("delete")(request_cmd.delete)
    app.command("token")(request_cmd.token)

    @app.callback()
    def _main(
            verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logs."),
    ):
        setup_logging(verbose)

    return app


app = _build_app()
