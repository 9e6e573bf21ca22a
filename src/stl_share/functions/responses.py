"""Shared HTTP response helpers: JSON bodies, CORS headers and preflight replies."""

from __future__ import annotations

import json
from typing import Any

import azure.functions as func

ALLOW_ORIGIN = "*"
JSON_MIMETYPE = "application/json"


def cors_headers(methods: str, allow_headers: str = "Content-Type") -> dict[str, str]:
    """Headers that let any origin call an endpoint with the given methods."""
    return {
        "Access-Control-Allow-Origin": ALLOW_ORIGIN,
        "Access-Control-Allow-Methods": methods,
        "Access-Control-Allow-Headers": allow_headers,
    }


def json_response(
    body: dict[str, Any],
    status_code: int,
    headers: dict[str, str] | None = None,
) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(body),
        status_code=status_code,
        headers=headers,
        mimetype=JSON_MIMETYPE,
    )


def error_response(
    message: str,
    status_code: int,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> func.HttpResponse:
    return json_response({"error": message, **extra}, status_code, headers)


def preflight_response(headers: dict[str, str]) -> func.HttpResponse:
    """Empty 204 reply to a CORS preflight request."""
    return func.HttpResponse(b"", status_code=204, headers=headers)


def read_json_body(req: func.HttpRequest) -> dict[str, Any]:
    """Return the request's JSON object body, or an empty dict if there is none."""
    try:
        body = req.get_json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
