from __future__ import annotations

import io
from collections.abc import Mapping
from typing import Any

import httpx

from .config_types import ClientConfig, resolve_options
from .envelope import unwrap
from .transport import Sink, Transport


class BillingoClient:
    def __init__(
            self,
            options: ClientConfig | Mapping[str, Any],
            *,
            transport: httpx.BaseTransport | None = None,
    ):
        self.config = resolve_options(options)
        self._t = Transport(self.config, transport=transport)

    def close(self) -> None:
        self._t.close()

    def __enter__(self) -> BillingoClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def auth_header(self, *, issuer_hint: str | None = None) -> str:
        """Value for the Authorization header, signed just now."""
        return self._t.auth_headers(issuer_hint=issuer_hint)["Authorization"]

    def request(
            self,
            method: str,
            path: str,
            data: Any | None = None,
            *,
            issuer_hint: str | None = None,
    ) -> Any:
        response = self._t.send(method, path, data, issuer_hint=issuer_hint)
        return unwrap(response)

    def get(self, path: str, data: Any | None = None, **kwargs) -> Any:
        return self.request("GET", path, data, **kwargs)

    def post(self, path: str, data: Any | None = None, **kwargs) -> Any:
        return self.request("POST", path, data, **kwargs)

    def put(self, path: str, data: Any | None = None, **kwargs) -> Any:
        return self.request("PUT", path, data, **kwargs)

    def delete(self, path: str, data: Any | None = None, **kwargs) -> Any:
        return self.request("DELETE", path, data, **kwargs)

    def download_invoice(self, invoice_id: int | str, sink: Sink | None = None) -> io.BytesIO | None:
        return self._t.download(f"invoices/{invoice_id}/download", sink)


APIClient = BillingoClient
