"""HTTP trigger blueprint — share token issuing, validation and token-scoped Drive relay."""

import logging
from urllib.error import URLError

import azure.functions as func

from stl_share.config import load_config
from stl_share.drive.client import DriveApiError, DriveContent
from stl_share.drive.credentials import ServiceCredentialError
from stl_share.drive.sharing import preview_link
from stl_share.functions.responses import (
    cors_headers,
    error_response,
    json_response,
    preflight_response,
    read_json_body,
)
from stl_share.gateway.proxy import ShareScopeError, share_proxy_from_config
from stl_share.gateway.routes import (
    PARAM_FILE_ID,
    PARAM_FOLDER_ID,
    PARAM_RESOURCE_ID,
    PARAM_TOKEN,
    ROUTE_ISSUE_TOKEN,
    ROUTE_SHARED_FILE,
    ROUTE_SHARED_FOLDER,
    ROUTE_SHARED_FOLDER_FILE,
    ROUTE_VALIDATE_TOKEN,
)
from stl_share.tokens.service import InvalidTokenError, TokenExpiredError, token_service_from_config

logger = logging.getLogger(__name__)

bp = func.Blueprint()

_POST_CORS = cors_headers("POST, OPTIONS")
_GET_CORS = cors_headers("GET, OPTIONS")


def _relay_error(exc: Exception, operation: str) -> func.HttpResponse:
    """Map a token-scoped relay failure to its HTTP response."""
    if isinstance(exc, TokenExpiredError):
        return error_response("Token expired", 401, _GET_CORS, expired=True)
    if isinstance(exc, InvalidTokenError):
        return error_response("Invalid token", 401, _GET_CORS)
    if isinstance(exc, ShareScopeError):
        return error_response(str(exc), exc.status_code, _GET_CORS)
    if isinstance(exc, DriveApiError):
        logger.error(
            "[%s] Drive request failed; status:%d;message:%s",
            operation,
            exc.status_code,
            exc.message,
        )
        return error_response(
            f"Failed to fetch from Drive: {exc.message}", exc.status_code, _GET_CORS
        )
    if isinstance(exc, (URLError, TimeoutError)):
        logger.error("[%s] Drive unreachable; error:%s", operation, exc)
        return error_response("Failed to reach Drive", 502, _GET_CORS)
    if isinstance(exc, ServiceCredentialError):
        return error_response(str(exc), 500, _GET_CORS)
    logger.error("[%s] share relay failed", operation, exc_info=exc)
    return error_response("Internal server error", 500, _GET_CORS)


def _content_response(content: DriveContent, max_age: int) -> func.HttpResponse:
    return func.HttpResponse(
        content.data,
        status_code=200,
        headers={**_GET_CORS, "Cache-Control": f"public, max-age={max_age}"},
        mimetype=content.content_type,
    )


@bp.route(
    route=ROUTE_ISSUE_TOKEN,
    methods=["POST", "OPTIONS"],
    auth_level=func.AuthLevel.ANONYMOUS,
)
def issue_share_token(req: func.HttpRequest) -> func.HttpResponse:
    """Sign a share token for ``{resourceId, resourceType, ttlMinutes}``."""
    if req.method == "OPTIONS":
        return preflight_response(_POST_CORS)
    if req.method != "POST":
        return error_response("Method Not Allowed", 405, _POST_CORS)

    body = read_json_body(req)
    resource_id = body.get("resourceId")
    resource_type = body.get("resourceType")
    ttl_minutes = body.get("ttlMinutes")
    if not resource_id or not resource_type or not ttl_minutes:
        return error_response("Missing required parameters", 400, _POST_CORS)

    try:
        config = load_config()
        token = token_service_from_config(config).issue(resource_id, resource_type, ttl_minutes)
    except ValueError as exc:
        return error_response(str(exc), 400, _POST_CORS)
    except Exception:
        logger.error("[issue_share_token] token generation failed", exc_info=True)
        return error_response("Internal server error", 500, _POST_CORS)

    result = {"token": token}
    if config.app_base_url:
        result["previewUrl"] = preview_link(config.app_base_url, token)
    return json_response(result, 200, _POST_CORS)


@bp.route(
    route=ROUTE_VALIDATE_TOKEN,
    methods=["POST", "OPTIONS"],
    auth_level=func.AuthLevel.ANONYMOUS,
)
def validate_share_token(req: func.HttpRequest) -> func.HttpResponse:
    """Report whether ``{token}`` is valid and what it grants."""
    if req.method == "OPTIONS":
        return preflight_response(_POST_CORS)
    if req.method != "POST":
        return error_response("Method Not Allowed", 405, _POST_CORS)

    token = read_json_body(req).get(PARAM_TOKEN)
    if not token:
        return error_response("Missing token parameter", 400, _POST_CORS)

    try:
        payload = token_service_from_config(load_config()).validate(token)
    except TokenExpiredError:
        return error_response("Token expired", 401, _POST_CORS, expired=True, valid=False)
    except InvalidTokenError:
        return error_response("Invalid token", 401, _POST_CORS, valid=False)
    except Exception:
        logger.error("[validate_share_token] token validation failed", exc_info=True)
        return error_response("Internal server error", 500, _POST_CORS)

    return json_response(
        {
            "valid": True,
            "resourceId": payload.resource_id,
            "resourceType": payload.resource_type.value,
            "expiresAt": payload.expires_at,
        },
        200,
        _POST_CORS,
    )


@bp.route(
    route=ROUTE_SHARED_FILE,
    methods=["GET", "OPTIONS"],
    auth_level=func.AuthLevel.ANONYMOUS,
)
def share_file(req: func.HttpRequest) -> func.HttpResponse:
    """Stream the file a file token was issued for."""
    if req.method == "OPTIONS":
        return preflight_response(_GET_CORS)
    if req.method != "GET":
        return error_response("Method Not Allowed", 405, _GET_CORS)

    token = req.params.get(PARAM_TOKEN)
    if not token:
        return error_response("Missing token parameter", 400, _GET_CORS)

    try:
        config = load_config()
        payload = token_service_from_config(config).validate(token)
        content = share_proxy_from_config(config).fetch_file(
            payload, req.params.get(PARAM_RESOURCE_ID)
        )
    except Exception as exc:
        return _relay_error(exc, "share_file")

    return _content_response(content, config.share_cache_max_age)


@bp.route(
    route=ROUTE_SHARED_FOLDER,
    methods=["GET", "OPTIONS"],
    auth_level=func.AuthLevel.ANONYMOUS,
)
def share_folder(req: func.HttpRequest) -> func.HttpResponse:
    """List the shared folder (or a sub-folder) as ``{folders, images, stlFiles}``."""
    if req.method == "OPTIONS":
        return preflight_response(_GET_CORS)
    if req.method != "GET":
        return error_response("Method Not Allowed", 405, _GET_CORS)

    token = req.params.get(PARAM_TOKEN)
    if not token:
        return error_response("Missing token parameter", 400, _GET_CORS)

    try:
        config = load_config()
        payload = token_service_from_config(config).validate(token)
        contents = share_proxy_from_config(config).list_folder(
            payload, req.params.get(PARAM_FOLDER_ID)
        )
    except Exception as exc:
        return _relay_error(exc, "share_folder")

    return json_response(contents.to_api(), 200, _GET_CORS)


@bp.route(
    route=ROUTE_SHARED_FOLDER_FILE,
    methods=["GET", "OPTIONS"],
    auth_level=func.AuthLevel.ANONYMOUS,
)
def share_folder_file(req: func.HttpRequest) -> func.HttpResponse:
    """Stream a file from inside the shared folder."""
    if req.method == "OPTIONS":
        return preflight_response(_GET_CORS)
    if req.method != "GET":
        return error_response("Method Not Allowed", 405, _GET_CORS)

    token = req.params.get(PARAM_TOKEN)
    file_id = req.params.get(PARAM_FILE_ID)
    if not token:
        return error_response("Missing token parameter", 400, _GET_CORS)
    if not file_id:
        return error_response("Missing fileId parameter", 400, _GET_CORS)

    try:
        config = load_config()
        payload = token_service_from_config(config).validate(token)
        content = share_proxy_from_config(config).fetch_folder_file(payload, file_id)
    except Exception as exc:
        return _relay_error(exc, "share_folder_file")

    return _content_response(content, config.share_cache_max_age)
