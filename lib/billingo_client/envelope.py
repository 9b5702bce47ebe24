from __future__ import annotations

import json
from typing import Any

import httpx

from .errors import ParseError, RequestError


def is_success(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip() not in ("", "0")
    return bool(value)


def unwrap(response: httpx.Response) -> Any:
    """Turn an API envelope into its ``data`` payload.

    Raises ParseError when the body is not a JSON object and RequestError when
    either the status code is not 200 or the envelope reports ``success: 0``.
    """
    text = response.text
    try:
        payload = json.loads(text)
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        raise ParseError(f"Cannot decode: {text}", text)

    if response.status_code != 200 or not is_success(payload.get("success")):
        error = payload.get("error")
        raise RequestError(str(error) if error is not None else None, response.status_code)

    if "data" in payload:
        return payload["data"]
    return {}


def error_message(response: httpx.Response) -> str | None:
    """Best-effort ``error`` field of a failed response, for non-JSON endpoints."""
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("error") is not None:
        return str(payload["error"])
    return None
