from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError

from app.core.security import decode_token
from app.schemas.auth import CurrentUser, TokenData

security = HTTPBearer()

# Roles that act for the travel policy service.
POLICY_ROLES = ("org_admin", "accounting_manager")


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> CurrentUser:
    """Identity from the bearer token; users live in the identity service, not here."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("sub") is None:
        raise credentials_exception

    try:
        token_data = TokenData(**payload)
    except ValidationError:
        raise credentials_exception

    return CurrentUser(
        id=token_data.sub,
        email=token_data.email,
        role=token_data.role,
        tenant_id=token_data.tenant_id,
    )


def get_accounting_user(
    current_user: CurrentUser = Depends(get_current_user)
) -> CurrentUser:
    if not current_user.is_accounting:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Accounting manager role required"
        )
    return current_user
