# studypartner/core/deps.py
import uuid
from dataclasses import dataclass
from typing import List, Optional

from fastapi import Depends, WebSocket
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studypartner.middleware.request_context import get_request
from studypartner.core.errors import Unauthenticated, Unauthorized
from studypartner.core.security import SecurityService
from studypartner.db.models.database import Profiles, User
from studypartner.db.session import AsyncSessionLocal, get_session
from studypartner.libs.formats.datetime import now as get_now


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved once per request and passed explicitly to services."""

    user_id: uuid.UUID
    role: Optional[str] = None
    profile_id: Optional[uuid.UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _extract_token(cookies, headers, query_params=None) -> Optional[str]:
    token = cookies.get("access_token")
    if not token and query_params is not None:
        token = query_params.get("token") or query_params.get("access_token")
    if not token:
        token = headers.get("authorization")
    if token and token.lower().startswith("bearer "):
        token = token.split(" ", 1)[1].strip()
    return token or None


async def resolve_context(
    db: AsyncSession, security: SecurityService, token: Optional[str]
) -> AuthContext:
    if not token:
        raise Unauthenticated("Token not found")

    try:
        payload = await security.decode_access_token(token)
    except ValueError as e:
        raise Unauthenticated(str(e))

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise Unauthenticated("Invalid token")

    row = (
        await db.execute(
            select(User.id, Profiles.id, Profiles.role)
            .outerjoin(Profiles, Profiles.user_id == User.id)
            .where(User.id == user_id)
        )
    ).first()
    if not row:
        raise Unauthenticated("Invalid token")

    return AuthContext(user_id=row[0], profile_id=row[1], role=row[2])


class AuthorizationService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        security: SecurityService = Depends(SecurityService),
    ):
        self.db = db
        self.security = security

    # ==============================
    # 🧩 CORE AUTH CHECKS
    # ==============================

    async def get_current_user(self) -> AuthContext:
        request = get_request()
        token = _extract_token(request.cookies, request.headers)
        ctx = await resolve_context(self.db, self.security, token)

        user = await self.db.get(User, ctx.user_id)
        if user is not None:
            user.last_login_at = get_now()
            await self.db.commit()
        return ctx

    async def get_current_user_if_any(self) -> Optional[AuthContext]:
        try:
            return await self.get_current_user()
        except Unauthenticated:
            return None

    # ==============================
    # 🧩 ROLE-BASED ACCESS CONTROL
    # ==============================

    async def require_role(self, required_roles: Optional[List[str]] = None) -> AuthContext:
        ctx = await self.get_current_user()

        if not required_roles:
            return ctx

        if ctx.role not in required_roles:
            raise Unauthorized("Permission denied")

        return ctx

    async def require_profile(self) -> AuthContext:
        ctx = await self.get_current_user()
        if ctx.role is None:
            raise Unauthorized("Create a profile first")
        return ctx

    @staticmethod
    async def get_context_ws(websocket: WebSocket) -> AuthContext | None:
        """
        Resolve identity for a websocket handshake:
        the access_token cookie first, then the ?token= query param, then the
        Authorization header.
        Closes the socket with 1008 on failure.
        """
        token = _extract_token(
            websocket.cookies, websocket.headers, websocket.query_params
        )
        try:
            async with SecurityService() as security, AsyncSessionLocal() as db:
                return await resolve_context(db, security, token)
        except Unauthenticated as e:
            logger.warning(f"[WS] Rejected handshake: {e.detail}")
            await websocket.send_json({"error": e.detail})
            await websocket.close(code=1008)
            return None
