import base64
import json
import logging
import time
from dataclasses import dataclass, field

import httpx
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509 import load_pem_x509_certificate
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import AUTH_CERTS_URL, AUTH_ISSUER, AUTH_PROJECT_ID
from .database import get_db
from .models import PROFILE_ROLES, Profile

logger = logging.getLogger(__name__)

security = HTTPBearer()

# Cache for the auth provider's public certificates
_cached_keys = None


@dataclass
class AuthContext:
    """The authenticated user for one request: profile row plus verified token claims"""

    profile: Profile
    claims: dict = field(default_factory=dict)

    @property
    def user_id(self) -> str:
        return self.profile.id

    @property
    def role(self) -> str:
        return self.profile.role


async def get_public_keys():
    """Fetch the auth provider's public x509 certificates"""
    global _cached_keys
    if _cached_keys:
        return _cached_keys

    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.get(AUTH_CERTS_URL)
            if response.status_code == 200:
                _cached_keys = response.json()
                logger.info(f"✅ Fetched {len(_cached_keys)} auth public keys")
                return _cached_keys
            logger.error(f"❌ Failed to fetch auth public keys: HTTP {response.status_code}")
    except Exception as e:
        logger.error(f"❌ Error fetching auth public keys: {str(e)}")
    return None


def _b64decode(segment: str) -> bytes:
    padding_len = 4 - len(segment) % 4
    return base64.urlsafe_b64decode(segment + ("=" * padding_len if padding_len != 4 else ""))


async def verify_token(token: str) -> dict:
    """
    Verify an RS256 ID token: signature against the provider certificates,
    then audience, issuer, expiry and issued-at claims.
    """
    if not AUTH_PROJECT_ID:
        logger.error("❌ AUTH_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Authentication not configured")

    parts = token.split(".")
    if len(parts) != 3:
        raise HTTPException(status_code=401, detail="Invalid token format")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64decode(header_b64))
    except Exception as e:
        raise HTTPException(status_code=401, detail="Invalid token header") from e

    kid = header.get("kid")
    if header.get("alg") != "RS256" or not kid:
        raise HTTPException(status_code=401, detail="Invalid token algorithm")

    global _cached_keys
    public_keys = await get_public_keys()
    if not public_keys or kid not in public_keys:
        logger.warning(f"⚠️ Key ID {kid} not found in public keys, invalidating cache and retrying")
        _cached_keys = None
        public_keys = await get_public_keys()
        if not public_keys or kid not in public_keys:
            raise HTTPException(status_code=401, detail="Unable to verify token signature")

    try:
        cert = load_pem_x509_certificate(public_keys[kid].encode(), default_backend())
        cert.public_key().verify(
            _b64decode(signature_b64),
            f"{header_b64}.{payload_b64}".encode(),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
    except Exception as e:
        logger.error(f"❌ Token signature verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token signature") from e

    claims = json.loads(_b64decode(payload_b64))

    if claims.get("aud") != AUTH_PROJECT_ID:
        raise HTTPException(status_code=401, detail="Invalid token audience")
    if claims.get("iss") != AUTH_ISSUER:
        raise HTTPException(status_code=401, detail="Invalid token issuer")
    if claims.get("exp", 0) < time.time():
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        )
    if claims.get("iat", 0) > time.time() + 60:  # Allow 60 seconds clock skew
        raise HTTPException(status_code=401, detail="Invalid token")

    return claims


async def get_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Resolve the bearer token to an AuthContext, creating the profile on first sign-in"""
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")

    claims = await verify_token(credentials.credentials)
    user_id = claims.get("sub") or claims.get("user_id")
    if not user_id:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        role = claims.get("role") if claims.get("role") in PROFILE_ROLES else "client"
        logger.info(f"🆕 Creating profile for {claims.get('email')} ({role})")
        profile = Profile(
            id=user_id,
            email=claims.get("email") or f"{user_id}@users.invalid",
            full_name=claims.get("name"),
            role=role,
        )
        db.add(profile)
        try:
            db.commit()
            db.refresh(profile)
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Failed to create profile for {user_id}: {e}")
            raise HTTPException(status_code=409, detail="Profile could not be created") from e

    return AuthContext(profile=profile, claims=claims)


async def get_current_user(ctx: AuthContext = Depends(get_auth_context)) -> Profile:
    return ctx.profile


def require_role(role: str):
    """
    Dependency factory restricting a route to one profile role.

    Example:
        @router.get("/earnings")
        async def earnings(user: Profile = Depends(require_role("therapist"))): ...
    """

    async def dependency(user: Profile = Depends(get_current_user)) -> Profile:
        if user.role != role:
            logger.warning(f"⚠️ User {user.id} ({user.role}) denied {role}-only route")
            raise HTTPException(status_code=403, detail=f"Only {role}s can access this resource")
        return user

    return dependency
