"""
Identity supplied by the upstream auth gateway.

The gateway authenticates the session and forwards the user id and role as
request headers; this service only reads them.
"""

from dataclasses import dataclass

from fastapi import Depends, Request

from shared.utils.configs import api_configs
from shared.utils.errors import AuthorizationError
from shared.utils.types import ErrorType

ADMIN_ROLE = "ADMIN"


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def get_identity(request: Request) -> Identity:
    """
    Read the caller's identity from the gateway headers.

    Raises:
        AuthorizationError: 401 if no user id was forwarded
    """
    user_id = request.headers.get(api_configs["user_id_header"], "").strip()
    if not user_id:
        raise AuthorizationError()
    role = request.headers.get(api_configs["user_role_header"], "").strip().upper()
    return Identity(user_id=user_id, role=role or "USER")


def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    """
    Route dependency for admin-only endpoints.

    Raises:
        AuthorizationError: 401 without identity, 403 for non-admin callers
    """
    if not identity.is_admin:
        raise AuthorizationError(
            message="Forbidden", error_type=ErrorType.FORBIDDEN, status_code=403
        )
    return identity
