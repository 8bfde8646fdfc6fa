from fastapi import Depends, HTTPException, Response
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studypartner.core.deps import AuthContext
from studypartner.core.errors import DuplicateResource, Unauthenticated
from studypartner.core.security import SecurityService
from studypartner.core.settings import settings
from studypartner.db.models.database import User
from studypartner.db.session import get_session
from studypartner.libs.formats.datetime import now as get_now
from studypartner.schemas.auth.user import LoginUser, UserCreate


class AuthService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        security: SecurityService = Depends(SecurityService),
    ):
        self.db = db
        self.security = security

    async def register_async(self, schema: UserCreate) -> dict:
        try:
            existing_id = await self.db.scalar(
                select(User.id).where(User.email == schema.email)
            )
            if existing_id:
                raise DuplicateResource("Email already registered")

            user = User(
                email=schema.email,
                fullname=schema.full_name or "",
                password=await self.security.hash_password(schema.password),
                created_at=get_now(),
            )
            self.db.add(user)
            await self.db.commit()
        except HTTPException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"[Auth][Register] {e}")
            raise HTTPException(500, "Failed to register")

        logger.info(f"[Auth] Registered {user.email}")
        return {"id": user.id, "email": user.email}

    async def login_async(self, schema: LoginUser, res: Response) -> dict:
        user = await self.db.scalar(select(User).where(User.email == schema.email))

        # same message for unknown email and wrong password
        if not user or not await self.security.verify_password(schema.password, user.password or ""):
            raise Unauthenticated("Invalid email or password")

        user.last_login_at = get_now()
        await self.db.commit()

        res.set_cookie(
            key="access_token",
            value=await self.security.create_access_token(str(user.id)),
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite="lax",
            max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            path="/",
        )
        return {"message": "Login successful"}

    async def logout_async(self, res: Response) -> dict:
        res.delete_cookie(
            key="access_token",
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite="lax",
            path="/",
        )
        return {"message": "Logout done"}

    async def me_async(self, ctx: AuthContext) -> dict:
        user = await self.db.get(User, ctx.user_id)
        if not user:
            raise Unauthenticated("User not found")
        return {
            "id": user.id,
            "email": user.email,
            "fullname": user.fullname,
            "role": ctx.role,
            "profile_id": ctx.profile_id,
        }
