from __future__ import annotations

import logging
import logging.handlers
import os
import queue
import re
import threading
from collections.abc import Callable, Sequence
from urllib.parse import urlsplit

import httpx
import structlog

from .config_types import ClientConfig

log = logging.getLogger(__name__)

LOGGER_NAME = "api-consumer"
LOG_FILENAME = "api-billingo-consumer.log"
LINE_FORMAT = "[%(asctime)s] %(name)s.%(levelname)s: %(message)s"
LOGGLY_HOST = "logs-01.loggly.com"
# Marks requests whose body is streamed to the caller and must not be read here.
STREAM_EXTENSION = "billingo_stream"

_PLACEHOLDER = re.compile(r"\{\s*([A-Za-z_]+)\s*\}")


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def _headers(message: httpx.Request | httpx.Response) -> str:
    return "\r\n".join(f"{name}: {value}" for name, value in message.headers.items())


def render(
        template: str,
        request: httpx.Request,
        response: httpx.Response | None = None,
        error: BaseException | None = None,
) -> str:
    """Fill a message template from a request/response pair.

    Supported placeholders: method, uri, target, host, version, code, phrase,
    req_headers, req_body, res_headers, res_body, error. Anything else renders
    as an empty string, as do response fields when the request failed.
    """

    def value(name: str) -> str:
        if name == "method":
            return request.method
        if name == "uri":
            return str(request.url)
        if name == "target":
            return _text(request.url.raw_path)
        if name == "host":
            return request.url.host
        if name == "req_headers":
            return _headers(request)
        if name == "req_body":
            return _text(request.content)
        if name == "error":
            return str(error) if error is not None else ""
        if response is None:
            return ""
        if name == "version":
            return response.http_version.removeprefix("HTTP/")
        if name == "code":
            return str(response.status_code)
        if name == "phrase":
            return response.reason_phrase
        if name == "res_headers":
            return _headers(response)
        if name == "res_body":
            if request.extensions.get(STREAM_EXTENSION):
                return "<stream>"
            return _text(response.read())
        return ""

    return _PLACEHOLDER.sub(lambda m: value(m.group(1)), template)


class _LineHTTPHandler(logging.handlers.HTTPHandler):
    """Posts the formatted line instead of the raw LogRecord attributes."""

    def mapLogRecord(self, record: logging.LogRecord) -> dict[str, str]:
        return {"message": self.format(record)}


def _http_handler(url: str) -> logging.Handler:
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"not an http(s) url: {url}")
    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"
    return _LineHTTPHandler(parts.netloc, path, method="POST", secure=parts.scheme == "https")


def _syslog_address(raw: str) -> str | tuple[str, int]:
    if raw.startswith("/"):
        return raw
    host, _, port = raw.rpartition(":")
    if not host:
        return raw, logging.handlers.SYSLOG_UDP_PORT
    return host, int(port)


class RequestLogger:
    """Lazily builds the request logger for one client, at most once.

    The underlying stdlib logger is private to this instance (it is not
    registered with ``logging.getLogger``), so two clients with different
    ``log_dir`` values never share handlers.
    """

    def __init__(self, cfg: ClientConfig):
        self._cfg = cfg
        self._lock = threading.Lock()
        self._logger: structlog.stdlib.BoundLogger | None = None
        self._handlers: list[logging.Handler] = []
        self._listener: logging.handlers.QueueListener | None = None

    def get(self) -> structlog.stdlib.BoundLogger:
        if self._logger is None:
            with self._lock:
                if self._logger is None:
                    self._logger = self._build()
        return self._logger

    def _build(self) -> structlog.stdlib.BoundLogger:
        formatter = logging.Formatter(LINE_FORMAT)
        target = logging.Logger(LOGGER_NAME, level=logging.INFO)
        target.propagate = False

        local: list[logging.Handler] = []
        remote: list[logging.Handler] = []
        for kind, factory in self._sink_factories():
            try:
                handler = factory()
            except (OSError, ValueError) as e:
                log.warning("skipping %s request log sink: %s", kind, e)
                continue
            handler.setFormatter(formatter)
            (remote if kind in ("remote", "loggly") else local).append(handler)

        for handler in local:
            target.addHandler(handler)
        if remote:
            q: queue.SimpleQueue = queue.SimpleQueue()
            target.addHandler(logging.handlers.QueueHandler(q))
            self._listener = logging.handlers.QueueListener(q, *remote)
            self._listener.start()
        self._handlers = local + remote

        return structlog.wrap_logger(
            target,
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.UnicodeDecoder(),
                structlog.stdlib.render_to_log_kwargs,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
        )

    def _sink_factories(self) -> list[tuple[str, Callable[[], logging.Handler]]]:
        cfg = self._cfg

        def file_handler() -> logging.Handler:
            os.makedirs(cfg.log_dir, exist_ok=True)
            return logging.handlers.TimedRotatingFileHandler(
                os.path.join(cfg.log_dir, LOG_FILENAME),
                when="midnight",
                encoding="utf-8",
                delay=True,
            )

        sinks: list[tuple[str, Callable[[], logging.Handler]]] = [("file", file_handler)]
        if cfg.syslog:
            sinks.append(("syslog", lambda: logging.handlers.SysLogHandler(_syslog_address(cfg.syslog_address))))
        if cfg.remote_log_url:
            sinks.append(("remote", lambda: _http_handler(cfg.remote_log_url)))
        if cfg.loggly_token:
            sinks.append(("loggly", lambda: _http_handler(f"https://{LOGGLY_HOST}/inputs/{cfg.loggly_token}/tag/http/")))
        return sinks

    def close(self) -> None:
        with self._lock:
            if self._listener is not None:
                self._listener.stop()
                self._listener = None
            for handler in self._handlers:
                handler.close()
            self._handlers = []
            self._logger = None


def _make_hook(template: str, request_logger: RequestLogger) -> Callable[[httpx.Response], None]:
    def hook(response: httpx.Response) -> None:
        # Log delivery is best-effort; it must never fail the API call.
        try:
            line = render(template, response.request, response)
            request_logger.get().info(
                line,
                http_method=response.request.method,
                status_code=response.status_code,
                template=template,
            )
        except Exception:
            log.warning("request log delivery failed", exc_info=True)

    return hook


def build_event_hooks(formats: Sequence[str], request_logger: RequestLogger) -> dict[str, list]:
    """One response hook per template; the last configured template runs first."""
    return {
        "request": [],
        "response": [_make_hook(template, request_logger) for template in reversed(formats)],
    }


def log_failure(
        formats: Sequence[str],
        request_logger: RequestLogger,
        request: httpx.Request,
        error: BaseException,
) -> None:
    """Log a request that got no response, at error level, once per template."""
    try:
        for template in reversed(formats):
            line = render(template, request, None, error)
            request_logger.get().error(
                line,
                http_method=request.method,
                error_type=type(error).__name__,
                template=template,
            )
    except Exception:
        log.warning("request log delivery failed", exc_info=True)
