from __future__ import annotations

import structlog
from fastapi import HTTPException, Request

from app.core.config import get_settings
from app.services.internal_auth import (
    CallerIdentity,
    extract_client_ip,
    is_client_ip_allowed,
    is_valid_internal_token,
    parse_caller_identity,
)

logger = structlog.get_logger(__name__)


def authenticate_caller(request: Request) -> CallerIdentity:
    settings = get_settings()
    client_ip = extract_client_ip(
        request,
        trusted_proxies=settings.internal_api_trusted_proxies,
    )

    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("caller_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    if not is_valid_internal_token(
        expected_token=settings.internal_api_token,
        received_token=request.headers.get("X-Internal-Token"),
    ):
        logger.warning("caller_auth_failed", reason="invalid_gateway_token", client_ip=client_ip)
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHENTICATED"})

    caller = parse_caller_identity(
        raw_user_id=request.headers.get("X-User-Id"),
        raw_role=request.headers.get("X-User-Role"),
    )
    if caller is None:
        logger.warning("caller_auth_failed", reason="invalid_identity", client_ip=client_ip)
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHENTICATED"})

    structlog.contextvars.bind_contextvars(user_id=str(caller.user_id), role=caller.role)
    return caller


def authenticate_staff(request: Request) -> CallerIdentity:
    caller = authenticate_caller(request)
    if not caller.is_staff:
        logger.warning("caller_auth_failed", reason="role_not_allowed", role=caller.role)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})
    return caller
