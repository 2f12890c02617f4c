import hashlib
import hmac
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import HTTPException
from passlib.context import CryptContext

from ghosty import config

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")
ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Unrecognised hash format.
        return False


def create_access_token(
    *,
    user_id: str,
    username: str | None,
    verification_status: str,
    is_admin: bool,
    registration_type: str,
    ttl_minutes: int | None = None,
) -> str:
    if not config.JWT_SECRET:
        raise HTTPException(status_code=500, detail="JWT secret not configured")
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=ttl_minutes or config.ACCESS_TOKEN_TTL_MINUTES)
    payload: dict[str, Any] = {
        "sub": user_id,
        "userId": user_id,
        "username": username,
        "verificationStatus": verification_status,
        "isAdmin": bool(is_admin),
        "registrationType": registration_type,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    if not config.JWT_SECRET:
        raise HTTPException(status_code=500, detail="JWT secret not configured")
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[ALGORITHM])
        if not isinstance(payload, dict):
            raise HTTPException(status_code=401, detail="Invalid token")
        return payload
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=401, detail="Token expired") from exc
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc


def create_activation_token() -> tuple[str, datetime]:
    expires_at = datetime.now(timezone.utc) + timedelta(hours=config.ACTIVATION_TOKEN_TTL_HOURS)
    return str(uuid.uuid4()), expires_at


def sign_storage_path(bucket: str, path: str, expires: int) -> str:
    if not config.JWT_SECRET:
        raise HTTPException(status_code=500, detail="JWT secret not configured")
    message = f"{bucket}:{path}:{int(expires)}".encode("utf-8")
    return hmac.new(config.JWT_SECRET.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_storage_signature(bucket: str, path: str, expires: int, signature: str) -> bool:
    candidate = sign_storage_path(bucket, path, expires)
    return hmac.compare_digest(candidate, signature or "")
