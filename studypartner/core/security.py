import secrets
from datetime import timedelta
from typing import Any, Dict

import bcrypt
import jwt

from studypartner.core.settings import settings
from studypartner.libs.formats.datetime import now_tzinfo


class SecurityService:
    def __init__(self):
        self.secret_key = settings.SECRET_KEY
        self.algorithm = settings.ALGORITHM
        self.access_token_expire_minutes = float(settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    # 🔐 JWT
    async def create_access_token(self, sub: str) -> str:
        return self._encode(
            {"sub": sub, "scope": "access"},
            timedelta(minutes=self.access_token_expire_minutes),
        )

    async def decode_access_token(self, token: str) -> Dict[str, Any]:
        payload = self._decode(token)
        if payload.get("scope") != "access":
            raise ValueError("Invalid token")
        return payload

    # 📦 Signed upload URLs
    async def create_upload_token(self, sub: str, storage_id: str, minutes: int) -> str:
        return self._encode(
            {"sub": sub, "sid": storage_id, "scope": "upload"},
            timedelta(minutes=minutes),
        )

    async def decode_upload_token(self, token: str) -> Dict[str, Any]:
        payload = self._decode(token)
        if payload.get("scope") != "upload":
            raise ValueError("Invalid token")
        return payload

    def _encode(self, claims: Dict[str, Any], ttl: timedelta) -> str:
        issued = now_tzinfo()
        payload: Dict[str, Any] = {**claims, "iat": issued, "exp": issued + ttl}
        return str(jwt.encode(payload, self.secret_key, algorithm=self.algorithm))

    def _decode(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise ValueError("Token expired")
        except jwt.InvalidTokenError:
            raise ValueError("Invalid token")

    # 🔑 PASSWORD
    @staticmethod
    async def hash_password(plain: str) -> str:
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    @staticmethod
    async def verify_password(plain: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False

    @staticmethod
    def generate_payment_ref() -> str:
        return f"pi_{int(now_tzinfo().timestamp() * 1000)}_{secrets.token_hex(5)}"
