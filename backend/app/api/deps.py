from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.errors import AuthError
from app.schemas.user import User
from app.services.ai_service import AIService
from app.services.auth_service import AuthService
from app.services.goal_service import GoalService
from app.services.store import GoalStore

security = HTTPBearer(auto_error=False)


def get_store(request: Request) -> GoalStore:
    return request.app.state.store


def get_goal_service(store: GoalStore = Depends(get_store)) -> GoalService:
    return GoalService(store)


def get_auth_service(request: Request, store: GoalStore = Depends(get_store)) -> AuthService:
    return AuthService(store, request.app.state.settings)


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    if credentials is None:
        raise AuthError("Not authenticated")
    return await auth.user_for_token(credentials.credentials)
