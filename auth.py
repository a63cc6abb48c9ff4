import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Cookie, HTTPException
from passlib.context import CryptContext
from pydantic import BaseModel

import config

logger = logging.getLogger("celenk.auth")

SESSION_COOKIE = "adminSession"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class AdminSession(BaseModel):
    username: str
    issued_at: datetime


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def admin_configured() -> bool:
    return bool(config.ADMIN_USERNAME and (config.ADMIN_PASSWORD_HASH or config.ADMIN_PASSWORD))


def verify_admin(username: str, password: str) -> bool:
    if not admin_configured():
        return False
    if not secrets.compare_digest(username.encode(), config.ADMIN_USERNAME.encode()):
        return False
    if config.ADMIN_PASSWORD_HASH:
        return pwd_context.verify(password, config.ADMIN_PASSWORD_HASH)
    return secrets.compare_digest(password.encode(), config.ADMIN_PASSWORD.encode())


def create_session_token(username: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": username,
        "iat": now,
        "exp": now + timedelta(hours=config.SESSION_MAX_AGE_HOURS),
        "nonce": secrets.token_hex(8),
    }
    return jwt.encode(payload, config.SESSION_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> AdminSession:
    try:
        payload = jwt.decode(token, config.SESSION_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Session expired")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected admin session token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid session")
    return AdminSession(username=payload["sub"],
                        issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc))


def current_admin(admin_session: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE)) -> Optional[AdminSession]:
    if not admin_session:
        return None
    try:
        return decode_session_token(admin_session)
    except HTTPException:
        return None


def require_admin(admin_session: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE)) -> AdminSession:
    if not admin_session:
        raise HTTPException(status_code=401, detail="Unauthorized. Admin authentication required.")
    return decode_session_token(admin_session)
