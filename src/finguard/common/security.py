"""Request identity: principal tokens from the auth gateway and the billing key."""

import hmac
from dataclasses import dataclass

from fastapi import Header, HTTPException
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from finguard.common.exceptions import FinguardError, http_status_for

PRINCIPAL_SALT = "finguard-principal"


@dataclass(frozen=True)
class Principal:
    """An already-authenticated user, as asserted by the auth gateway."""
    id: str


def _get_serializer() -> URLSafeTimedSerializer:
    from finguard.common.config import get_settings
    return URLSafeTimedSerializer(get_settings().secret_key, salt=PRINCIPAL_SALT)


def issue_principal_token(principal_id: str) -> str:
    """Sign a principal id the way the auth gateway does."""
    return _get_serializer().dumps({"sub": principal_id})


def verify_principal_token(token: str) -> str | None:
    """Return the principal id carried by a token, or None if it is not valid."""
    from finguard.common.config import get_settings

    try:
        payload = _get_serializer().loads(
            token, max_age=get_settings().principal_token_ttl
        )
    except (BadSignature, SignatureExpired):
        return None
    subject = payload.get("sub") if isinstance(payload, dict) else None
    if not isinstance(subject, str) or not subject:
        return None
    return subject


async def require_principal(
    x_finguard_principal: str = Header(..., alias="X-Finguard-Principal"),
) -> Principal:
    """FastAPI dependency that resolves the calling principal."""
    principal_id = verify_principal_token(x_finguard_principal)
    if principal_id is None:
        raise HTTPException(status_code=401, detail="Invalid principal token")
    return Principal(id=principal_id)


async def require_billing_key(
    x_finguard_api_key: str = Header(..., alias="X-Finguard-Api-Key"),
) -> str:
    """FastAPI dependency that validates the billing system's API key."""
    from finguard.common.config import get_settings

    settings = get_settings()
    if not hmac.compare_digest(
        x_finguard_api_key.encode(), settings.billing_api_key.encode()
    ):
        raise HTTPException(status_code=403, detail="Invalid billing API key")
    return x_finguard_api_key


def to_http_error(exc: FinguardError) -> HTTPException:
    """Translate a domain error into the API's error envelope."""
    return HTTPException(
        status_code=http_status_for(exc),
        detail={"code": exc.code, "message": exc.message},
    )
