"""HTTP trigger blueprint — generic Drive relay for the signed-in owner."""

import logging

import azure.functions as func

from stl_share.config import load_config
from stl_share.functions.responses import (
    cors_headers,
    error_response,
    preflight_response,
    read_json_body,
)
from stl_share.gateway.relay import RelayRequestError, drive_relay_from_config
from stl_share.gateway.routes import ROUTE_DRIVE_PROXY

logger = logging.getLogger(__name__)

bp = func.Blueprint()

_CORS = cors_headers("POST, OPTIONS", allow_headers="Content-Type, Authorization")


@bp.route(
    route=ROUTE_DRIVE_PROXY,
    methods=["POST", "OPTIONS"],
    auth_level=func.AuthLevel.ANONYMOUS,
)
def drive_proxy(req: func.HttpRequest) -> func.HttpResponse:
    """Forward ``{url, method?, headers?}`` to Drive with the caller's Authorization header.

    Drive's status code and content are relayed back unchanged.
    """
    if req.method == "OPTIONS":
        return preflight_response(_CORS)
    if req.method != "POST":
        return error_response("Method Not Allowed", 405, _CORS)

    try:
        body = read_json_body(req)
        relay = drive_relay_from_config(load_config())
        result = relay.forward(
            url=body.get("url"),
            authorization=req.headers.get("Authorization"),
            method=body.get("method"),
            headers=body.get("headers"),
        )
        return func.HttpResponse(
            result.body,
            status_code=result.status_code,
            headers=_CORS,
            mimetype=result.content_type,
        )

    except RelayRequestError as exc:
        return error_response(exc.message, exc.status_code, _CORS)

    except Exception as exc:
        logger.error("[drive_proxy] relay failed", exc_info=True)
        return error_response(str(exc) or "Internal server error", 500, _CORS)
