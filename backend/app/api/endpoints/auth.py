from fastapi import APIRouter, Depends, Request, status as http_status

from app.api.deps import get_auth_service, get_current_user
from app.core.config import settings
from app.core.rate_limit import limiter
from app.schemas.user import (
    ChangePasswordRequest, LoginRequest, RefreshRequest, RegisterRequest, UpdateProfileRequest, User,
)
from app.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=http_status.HTTP_201_CREATED)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def register(request: Request, req: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    result = await auth.register(req)
    return {"success": True, "message": "User registered successfully", "data": result}


@router.post("/login")
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def login(request: Request, req: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    result = await auth.login(req)
    return {"success": True, "message": "Login successful", "data": result}


@router.post("/refresh")
async def refresh(req: RefreshRequest, auth: AuthService = Depends(get_auth_service)):
    return {"success": True, "data": await auth.refresh(req)}


@router.get("/profile")
async def profile(user: User = Depends(get_current_user)):
    return {"success": True, "data": {"user": user}}


@router.put("/profile")
async def update_profile(req: UpdateProfileRequest, user: User = Depends(get_current_user),
                         auth: AuthService = Depends(get_auth_service)):
    updated = await auth.update_profile(user, req)
    return {"success": True, "message": "Profile updated successfully", "data": {"user": updated}}


@router.post("/change-password")
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def change_password(request: Request, req: ChangePasswordRequest, user: User = Depends(get_current_user),
                          auth: AuthService = Depends(get_auth_service)):
    await auth.change_password(user, req)
    return {"success": True, "message": "Password updated successfully"}


@router.post("/logout")
async def logout(user: User = Depends(get_current_user)):
    # Tokens are stateless; the client discards them
    return {"success": True, "message": "Logout successful"}
