from __future__ import annotations

import io
import os
from collections.abc import Mapping
from typing import Any, BinaryIO, Union

import httpx

from .config_types import ClientConfig
from .envelope import error_message
from .errors import NetworkError, RequestError
from .request_log import STREAM_EXTENSION, RequestLogger, build_event_hooks, log_failure
from .signing import bearer_header

QUERY_METHODS = frozenset({"GET", "DELETE"})

Sink = Union[BinaryIO, str, "os.PathLike[str]"]


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def query_params(payload: Any, prefix: str | None = None) -> list[tuple[str, str]]:
    """Flatten a payload into query pairs the way PHP builds query strings.

    Nested mappings and lists become ``key[sub]=v`` / ``key[0]=v``, booleans
    become ``1``/``0`` and ``None`` values are left out.
    """
    if isinstance(payload, Mapping):
        items = payload.items()
    elif isinstance(payload, (list, tuple)):
        items = enumerate(payload)
    elif prefix is None:
        raise TypeError("query payload must be a mapping or a list")
    else:
        return [] if payload is None else [(prefix, _query_value(payload))]

    pairs: list[tuple[str, str]] = []
    for key, value in items:
        name = str(key) if prefix is None else f"{prefix}[{key}]"
        if value is None:
            continue
        if isinstance(value, (Mapping, list, tuple)):
            pairs.extend(query_params(value, name))
        else:
            pairs.append((name, _query_value(value)))
    return pairs


class Transport:
    def __init__(self, cfg: ClientConfig, *, transport: httpx.BaseTransport | None = None):
        self._cfg = cfg
        self._request_logger: RequestLogger | None = None
        event_hooks = None
        if cfg.logging_enabled:
            self._request_logger = RequestLogger(cfg)
            event_hooks = build_event_hooks(cfg.log_msg_formats, self._request_logger)

        self._client = httpx.Client(
            base_url=cfg.host,
            verify=cfg.verify_tls,
            timeout=cfg.timeout_s,
            headers={"User-Agent": f"billingo-client/0.1.0 api/{cfg.version}"},
            event_hooks=event_hooks,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()
        if self._request_logger is not None:
            self._request_logger.close()

    def auth_headers(self, *, issuer_hint: str | None = None) -> dict[str, str]:
        return {"Authorization": bearer_header(self._cfg, issuer_hint=issuer_hint)}

    def _network_error(self, request: httpx.Request, e: httpx.RequestError) -> NetworkError:
        if self._request_logger is not None:
            log_failure(self._cfg.log_msg_formats, self._request_logger, request, e)
        return NetworkError(str(e))

    def send(
            self,
            method: str,
            path: str,
            payload: Any | None = None,
            *,
            issuer_hint: str | None = None,
    ) -> httpx.Response:
        method = method.upper()
        if payload is None:
            payload = {}
        if method in QUERY_METHODS:
            kwargs: dict[str, Any] = {"params": query_params(payload)}
        else:
            kwargs = {"json": payload}

        headers = self.auth_headers(issuer_hint=issuer_hint)
        request = self._client.build_request(method, path, headers=headers, **kwargs)
        try:
            return self._client.send(request)
        except httpx.RequestError as e:
            raise self._network_error(request, e) from e

    def download(self, path: str, sink: Sink | None = None) -> io.BytesIO | None:
        """GET a binary resource.

        With ``sink`` (an open binary file or a filesystem path) the body is
        streamed into it and nothing is returned; otherwise the whole body is
        returned as a BytesIO. A path sink only appears once the whole body
        has arrived.
        """
        request = self._client.build_request(
            "GET", path, headers=self.auth_headers(), extensions={STREAM_EXTENSION: True}
        )
        try:
            r = self._client.send(request, stream=True)
            try:
                if r.status_code != 200:
                    r.read()
                    raise RequestError(error_message(r), r.status_code)
                if sink is None:
                    return io.BytesIO(r.read())
                if isinstance(sink, (str, os.PathLike)):
                    _stream_to_path(r, os.fspath(sink))
                else:
                    for chunk in r.iter_bytes():
                        sink.write(chunk)
                return None
            finally:
                r.close()
        except httpx.RequestError as e:
            raise self._network_error(request, e) from e


def _stream_to_path(r: httpx.Response, path: str) -> None:
    partial = f"{path}.part"
    try:
        with open(partial, "wb") as f:
            for chunk in r.iter_bytes():
                f.write(chunk)
        os.replace(partial, path)
    except BaseException:
        if os.path.exists(partial):
            os.unlink(partial)
        raise
