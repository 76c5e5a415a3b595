import logging

from app.core.config import Settings
from app.core.errors import AuthError, ConflictError, ValidationError
from app.core.security import ACCESS, REFRESH, create_token_pair, decode_token, hash_password, verify_password
from app.schemas.user import (
    ChangePasswordRequest, LoginRequest, RefreshRequest, RegisterRequest, UpdateProfileRequest, User,
)
from app.services.store import GoalStore

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, store: GoalStore, settings: Settings):
        self.store = store
        self.settings = settings

    async def register(self, req: RegisterRequest) -> dict:
        if await self.store.get_user_by_email(req.email) is not None:
            raise ConflictError("User with this email already exists")

        user = await self.store.create_user(
            email=req.email,
            password_hash=hash_password(req.password),
            first_name=req.first_name,
            last_name=req.last_name,
        )
        return {"user": user, "tokens": create_token_pair(user.id, self.settings)}

    async def login(self, req: LoginRequest) -> dict:
        user = await self.store.get_user_by_email(req.email)
        if user is None or not verify_password(req.password, user.password_hash):
            logger.info("Failed login for %s", req.email)
            raise AuthError("Invalid email or password")

        logger.info("User logged in: %s", user.email)
        return {"user": user, "tokens": create_token_pair(user.id, self.settings)}

    async def refresh(self, req: RefreshRequest) -> dict:
        user = await self.user_for_token(req.refresh_token, REFRESH)
        return {"tokens": create_token_pair(user.id, self.settings)}

    async def user_for_token(self, token: str, token_type: str = ACCESS) -> User:
        user_id = decode_token(token, self.settings, expected_type=token_type)
        user = await self.store.get_user(user_id)
        if user is None:
            raise AuthError("User not found")
        return user

    async def update_profile(self, user: User, req: UpdateProfileRequest) -> User:
        changes = req.model_dump(include=req.model_fields_set)
        if not changes:
            return user

        updated = await self.store.update_user(user.id, changes)
        logger.info("User profile updated: %s", updated.email)
        return updated

    async def change_password(self, user: User, req: ChangePasswordRequest) -> None:
        if not verify_password(req.old_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

        await self.store.update_user(user.id, {"password_hash": hash_password(req.new_password)})
        logger.info("Password changed for user: %s", user.email)
