"""
Request Handlers — aiohttp views for the get-secret / set-secret operations.

Every vault error is rendered at this boundary as ``{"error", "code"}`` JSON;
nothing escapes as an unhandled fault. CORS headers are attached to every
response and ``OPTIONS`` preflight is answered before any view runs.

Security Note:
    Plaintext secrets are never echoed in responses other than a
    successful get-secret, and never logged.
"""
import logging
from typing import Any, Optional

import orjson
from aiohttp import web
from pydantic import AliasChoices, BaseModel, Field, StrictStr, ValidationError

from .exceptions import BadRequest, VaultError
from .vault import SecretVault

logger = logging.getLogger("navigator.vault")

VAULT_KEY = web.AppKey("navigator_secrets.vault", SecretVault)
CORS_ORIGIN_KEY = web.AppKey("navigator_secrets.cors_origin", str)

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"
CORS_ALLOW_METHODS = "GET, POST, OPTIONS"


# ---------------------------------------------------------------------------
# Payload models
# ---------------------------------------------------------------------------

class SetSecretRequest(BaseModel):
    """set-secret body; ``apiKey`` is accepted as a legacy alias."""

    secret: Optional[StrictStr] = Field(
        default=None,
        validation_alias=AliasChoices("secret", "apiKey"),
    )


class GetSecretResponse(BaseModel):
    secret: Optional[str] = None


class GetApiKeyResponse(BaseModel):
    apiKey: Optional[str] = None


class SetSecretResponse(BaseModel):
    success: bool = True
    cleared: bool
    message: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def json_response(data: Any, status: int = 200) -> web.Response:
    """Encode ``data`` with orjson into an application/json response."""
    return web.Response(
        body=orjson.dumps(data),
        status=status,
        content_type="application/json",
    )


def error_response(err: VaultError) -> web.Response:
    return json_response(
        {"error": err.message, "code": err.code}, status=err.status_code,
    )


def cors_headers(origin: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
    }


async def read_payload(request: web.Request) -> SetSecretRequest:
    """Parse and validate the set-secret JSON body.

    Raises:
        BadRequest: Body is not a JSON object or ``secret`` is not a string.
    """
    body = await request.read()
    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError as err:
        raise BadRequest("Request body must be valid JSON") from err
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    try:
        return SetSecretRequest.model_validate(data)
    except ValidationError as err:
        raise BadRequest("secret must be a string or null") from err


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

@web.middleware
async def vault_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Answer preflight, attach CORS headers and map errors to JSON."""
    headers = cors_headers(request.app.get(CORS_ORIGIN_KEY, "*"))
    if request.method == "OPTIONS":
        return web.Response(text="ok", headers=headers)
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(headers)
        raise
    except VaultError as err:
        response = error_response(err)
    except Exception:
        logger.exception("Unexpected error handling %s %s", request.method, request.path)
        response = json_response(
            {"error": "Internal server error", "code": "internal_error"},
            status=500,
        )
    response.headers.update(headers)
    return response


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

async def _read_secret(request: web.Request) -> Optional[str]:
    vault = request.app[VAULT_KEY]
    identity = await vault.authenticate(request.headers.get("Authorization"))
    return await vault.get_secret(identity)


async def _write_secret(request: web.Request) -> bool:
    vault = request.app[VAULT_KEY]
    identity = await vault.authenticate(request.headers.get("Authorization"))
    payload = await read_payload(request)
    return await vault.set_secret(identity, payload.secret)


async def get_secret(request: web.Request) -> web.Response:
    """get-secret: return the caller's secret, or null if none is stored."""
    secret = await _read_secret(request)
    return json_response(GetSecretResponse(secret=secret).model_dump())


async def set_secret(request: web.Request) -> web.Response:
    """set-secret: save (or clear, on empty input) the caller's secret."""
    cleared = await _write_secret(request)
    result = SetSecretResponse(
        cleared=cleared,
        message="Secret cleared." if cleared else "Secret saved.",
    )
    return json_response(result.model_dump())


async def get_api_key(request: web.Request) -> web.Response:
    """get-user-api-key: older clients read the secret from ``apiKey``."""
    secret = await _read_secret(request)
    return json_response(GetApiKeyResponse(apiKey=secret).model_dump())


async def set_api_key(request: web.Request) -> web.Response:
    """set-user-api-key: same write path, api-key wording in the reply."""
    cleared = await _write_secret(request)
    result = SetSecretResponse(
        cleared=cleared,
        message="API key cleared." if cleared else "API key saved.",
    )
    return json_response(result.model_dump())


def setup_routes(app: web.Application) -> None:
    """Register vault routes, including the legacy api-key paths."""
    app.router.add_get("/get-secret", get_secret, allow_head=False)
    app.router.add_post("/get-secret", get_secret)
    app.router.add_post("/set-secret", set_secret)
    app.router.add_get("/get-user-api-key", get_api_key, allow_head=False)
    app.router.add_post("/get-user-api-key", get_api_key)
    app.router.add_post("/set-user-api-key", set_api_key)
