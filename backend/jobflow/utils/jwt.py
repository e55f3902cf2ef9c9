"""JWT Token Validation for identity-provider issued access tokens"""
import jwt
from typing import Any, Dict, Optional
from datetime import timedelta

from ..config.settings import settings
from ..domain.enums import Role
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from .time import utc_now
from .logger import get_logger

logger = get_logger(__name__)


class JWTValidator:
    """HS256 JWT validator; the role claim must name a known Role"""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        self._secret = secret or settings.jwt_secret
        self._algorithm = algorithm or settings.jwt_algorithm

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate a bearer token

        Args:
            token: Bearer token (with or without 'Bearer ' prefix)

        Returns:
            Decoded token claims

        Raises:
            AuthenticationError: If token is invalid
        """
        if not token:
            raise AuthenticationError("Token is missing")

        if token.startswith("Bearer "):
            token = token[7:]

        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": True, "verify_aud": False}
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.PyJWTError as e:
            logger.warning(f"JWT validation error: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")

    def get_actor_context(self, token: str) -> ActorContext:
        """Extract actor context from a validated token"""
        claims = self.validate_token(token)

        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationError("Token has no subject")

        raw_role = claims.get("role")
        try:
            role = Role(raw_role)
        except ValueError:
            logger.warning(f"Unrecognized role claim: {raw_role!r}", extra={"actor_id": user_id})
            raise AuthenticationError(
                "User role not recognized",
                details={"role": raw_role}
            )

        return ActorContext(
            user_id=user_id,
            role=role,
            branch_id=claims.get("branch_id"),
            display_name=claims.get("name") or user_id
        )

    def create_token(
        self,
        user_id: str,
        role: Role,
        branch_id: Optional[str] = None,
        display_name: Optional[str] = None,
        expires_minutes: Optional[int] = None
    ) -> str:
        """Issue a token with the same claim layout (local tooling and tests)"""
        now = utc_now()
        minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
        claims: Dict[str, Any] = {
            "sub": user_id,
            "role": Role(role).value,
            "branch_id": branch_id,
            "name": display_name,
            "iat": now,
            "exp": now + timedelta(minutes=minutes),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)


# Global validator instance
_jwt_validator: Optional[JWTValidator] = None


def get_jwt_validator() -> JWTValidator:
    """Get global JWT validator instance"""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = JWTValidator()
    return _jwt_validator


def get_current_user(authorization: str) -> ActorContext:
    """
    Get current user from authorization header

    Args:
        authorization: Authorization header value

    Returns:
        ActorContext
    """
    if not authorization:
        raise AuthenticationError("Authorization header is missing")

    return get_jwt_validator().get_actor_context(authorization)
