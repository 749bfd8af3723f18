"""
Bearer Token Authentication

Extracts the `Authorization: Bearer <token>` header and verifies the token
against the external identity provider. Any failure is a 401; there is a
single verification attempt per request.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from apps.shared.errors import ApiError
from apps.shared.identity import IdentityError, verify_token

# Setup logging
logger = logging.getLogger(__name__)

NOT_AUTHORIZED = "Not authorized to access this route"

# Missing or malformed headers yield None instead of a 403
bearer_scheme = HTTPBearer(auto_error=False)


async def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Dict[str, Any]:
    """
    Dependency returning the verified claims of the request's bearer token

    Usage in endpoints:
    @router.get("/protected")
    def protected_endpoint(claims: dict = Depends(get_token_claims)):
        # claims["sub"] is the provider's subject id
        pass
    """
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise ApiError(NOT_AUTHORIZED, 401)

    try:
        return verify_token(credentials.credentials)
    except IdentityError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise ApiError(NOT_AUTHORIZED, 401)
