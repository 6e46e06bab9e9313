from __future__ import annotations

import logging

import jwt
from fastapi import HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgscope.models.security import User
from orgscope.scope_engine.types import parse_positive_int
from orgscope.security.config import SecurityConfig
from orgscope.security.context import Identity
from orgscope.settings import Settings

logger = logging.getLogger(__name__)


def extract_bearer_token(request: Request, config: SecurityConfig) -> str:
    """
    Read `Authorization: Bearer <token>`.

    A missing header is 401; a malformed one is 400.
    """

    header_name = config.auth.authorization_header
    bearer_prefix = config.auth.bearer_prefix

    raw = request.headers.get(header_name)
    if not raw:
        logger.info("Missing Authorization header path=%s method=%s", request.url.path, request.method)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    prefix = f"{bearer_prefix} "
    if not raw.startswith(prefix):
        logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Expected '{bearer_prefix} <token>'.",
        )

    token = raw[len(prefix) :].strip()
    if not token:
        logger.warning("Empty bearer token path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Missing token after '{bearer_prefix}'.",
        )
    return token


def decode_identity(token: str, settings: Settings, config: SecurityConfig) -> Identity:
    """
    Verify an HS256 token issued by the upstream auth service and read identity claims.

    Token issuance is not handled here; only the signature / expiry is checked.
    """

    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as exc:
        logger.info("Token rejected: %s", type(exc).__name__)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token") from exc

    user_id = None
    for claim in config.auth.user_id_claims:
        user_id = parse_positive_int(payload.get(claim))
        if user_id:
            break

    return Identity(
        user_id=user_id,
        tenant_id=parse_positive_int(payload.get(config.tenant.token_claim)),
    )


def resolve_tenant_id(request: Request, identity: Identity, config: SecurityConfig) -> int | None:
    """Tenant from header, then query parameter, then token claim."""

    tenant = config.tenant
    for raw in (request.headers.get(tenant.header), request.query_params.get(tenant.query_param)):
        parsed = parse_positive_int(raw)
        if parsed:
            return parsed
    return identity.tenant_id


async def load_user(db: AsyncSession, user_id: int) -> User:
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()

    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or inactive user")

    return user
