from fastapi import APIRouter, Body, Depends, Response, status

from studypartner.core.deps import AuthorizationService
from studypartner.schemas.auth.user import LoginUser, MeOut, UserCreate
from studypartner.services.shares.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    schema: UserCreate = Body(),
    auth_service: AuthService = Depends(AuthService),
):
    return await auth_service.register_async(schema)


@router.post("/login", status_code=200)
async def login(
    res: Response,
    schema: LoginUser = Body(),
    auth_service: AuthService = Depends(AuthService),
):
    return await auth_service.login_async(schema, res)


@router.get("/logout", status_code=status.HTTP_200_OK)
async def logout(
    res: Response,
    auth_service: AuthService = Depends(AuthService),
):
    return await auth_service.logout_async(res)


@router.get("/me", response_model=MeOut)
async def me(
    auth_service: AuthService = Depends(AuthService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    ctx = await authorization_service.get_current_user()
    return await auth_service.me_async(ctx)
