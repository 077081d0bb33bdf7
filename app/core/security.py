"""
Principal resolution from bearer tokens

Identity is verified upstream; this module only extracts the principal id
carried in the ``sub`` claim and trusts it as given.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from uuid import UUID
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
import logging
import time

from app.config import settings

logger = logging.getLogger(__name__)

# Token issuance lives outside this service
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/token")


class SecurityManager:
    """
    Token helpers for principal extraction
    """

    @staticmethod
    def create_access_token(
        data: Dict[str, Any],
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Create a JWT access token
        """
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.now(timezone.utc) + expires_delta
        else:
            expire = datetime.now(timezone.utc) + timedelta(
                minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
            )

        to_encode.update({
            "exp": expire,
            "type": "access",
            "iat": int(time.time()),
        })

        return jwt.encode(
            to_encode,
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM
        )

    @staticmethod
    def decode_token(token: str) -> Dict[str, Any]:
        """
        Decode and verify a JWT token
        """
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )

    @staticmethod
    def verify_token_type(payload: Dict[str, Any], expected_type: str):
        """
        Verify token type matches expected
        """
        if payload.get("type") != expected_type:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token type. Expected {expected_type}",
                headers={"WWW-Authenticate": "Bearer"},
            )


# Create global security manager
security_manager = SecurityManager()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    return security_manager.create_access_token(data, expires_delta)


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> UUID:
    """
    Get current principal ID from JWT token
    """
    credentials_error = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = security_manager.decode_token(token)
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise credentials_error

    security_manager.verify_token_type(payload, "access")

    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_error

    try:
        return UUID(str(user_id))
    except ValueError:
        raise credentials_error
