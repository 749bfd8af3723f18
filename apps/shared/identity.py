"""
Identity provider client

Verifies session tokens issued by the external identity provider and fetches
user profiles from its backend API. Tokens are RS256 JWTs checked against the
provider's published JWKS. Local development can instead sign HS256 tokens
with AUTH_JWT_SECRET.
"""
import os
import logging
from typing import Any, Dict, Optional

import requests
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

AUTH_JWKS_URL = os.getenv("AUTH_JWKS_URL")
AUTH_ISSUER = os.getenv("AUTH_ISSUER")
AUTH_API_URL = os.getenv("AUTH_API_URL", "https://api.clerk.com/v1")
AUTH_SECRET_KEY = os.getenv("AUTH_SECRET_KEY")
AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET")

REQUEST_TIMEOUT = 10

_jwks_cache: Optional[Dict[str, Any]] = None


class IdentityError(Exception):
    """Token could not be verified or the provider could not be reached."""


def get_jwks(force_refresh: bool = False) -> Dict[str, Any]:
    """Fetch the provider's signing keys, cached after the first call."""
    global _jwks_cache

    if _jwks_cache is not None and not force_refresh:
        return _jwks_cache

    if not AUTH_JWKS_URL:
        raise IdentityError("Identity provider not configured (AUTH_JWKS_URL is not set)")

    try:
        response = requests.get(AUTH_JWKS_URL, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        _jwks_cache = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Failed to fetch JWKS from identity provider: {e}")
        raise IdentityError("Could not fetch identity provider keys") from e

    return _jwks_cache


def _known_kids(jwks: Dict[str, Any]) -> set:
    return {key.get("kid") for key in jwks.get("keys", [])}


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify a bearer token and return its claims.

    Raises:
        IdentityError: On bad signature, expiry, missing subject, or when the
            provider keys cannot be fetched
    """
    options = {"verify_aud": False}

    try:
        if AUTH_JWT_SECRET:
            claims = jwt.decode(token, AUTH_JWT_SECRET, algorithms=["HS256"], options=options)
        else:
            jwks = get_jwks()
            kid = jwt.get_unverified_header(token).get("kid")
            if kid not in _known_kids(jwks):
                # Provider may have rotated keys since the cache was filled
                jwks = get_jwks(force_refresh=True)
            claims = jwt.decode(
                token,
                jwks,
                algorithms=["RS256"],
                issuer=AUTH_ISSUER,
                options=options,
            )
    except JWTError as e:
        raise IdentityError(f"Token verification failed: {e}") from e

    if not claims.get("sub"):
        raise IdentityError("Token has no subject")

    return claims


def _primary_email(user: Dict[str, Any]) -> Optional[str]:
    addresses = user.get("email_addresses") or []
    primary_id = user.get("primary_email_address_id")
    for address in addresses:
        if address.get("id") == primary_id:
            return address.get("email_address")
    return addresses[0].get("email_address") if addresses else None


def fetch_profile(subject: str, claims: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Look up name, email and avatar for a provider subject id.

    Falls back to the token claims when no provider secret key is configured.

    Raises:
        IdentityError: If the provider request fails
    """
    claims = claims or {}

    if not AUTH_SECRET_KEY:
        return {
            "name": claims.get("name") or "User",
            "email": claims.get("email"),
            "avatar": claims.get("picture"),
        }

    try:
        response = requests.get(
            f"{AUTH_API_URL}/users/{subject}",
            headers={"Authorization": f"Bearer {AUTH_SECRET_KEY}"},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        user = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Failed to fetch profile for {subject} from identity provider: {e}")
        raise IdentityError("Could not fetch user profile") from e

    full_name = " ".join(
        part for part in (user.get("first_name"), user.get("last_name")) if part
    )
    return {
        "name": full_name or user.get("username") or "User",
        "email": _primary_email(user),
        "avatar": user.get("image_url"),
    }
