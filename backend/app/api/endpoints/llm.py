from fastapi import APIRouter, Depends, Request

from app.api.deps import get_ai_service, get_current_user
from app.core.config import settings
from app.core.rate_limit import limiter
from app.schemas.suggestion import (
    ChatRequest, EstimateTimeRequest, GenerateSubtasksRequest, OptimizeTitleRequest, SuggestPriorityRequest,
)
from app.schemas.user import User
from app.services import planning
from app.services.ai_service import AIService

router = APIRouter(prefix="/llm", tags=["llm"])


@router.post("/generate-subtasks")
@limiter.limit(settings.LLM_RATE_LIMIT)
async def generate_subtasks(request: Request, req: GenerateSubtasksRequest,
                            user: User = Depends(get_current_user), ai: AIService = Depends(get_ai_service)):
    result = await ai.generate_subtasks(req.goal_description, req.context)
    return {"success": True, "data": result}


@router.post("/optimize-title")
@limiter.limit(settings.LLM_RATE_LIMIT)
async def optimize_title(request: Request, req: OptimizeTitleRequest,
                         user: User = Depends(get_current_user), ai: AIService = Depends(get_ai_service)):
    result = await ai.optimize_title(req.description, req.context.max_length, req.context.tone)
    return {"success": True, "data": result}


@router.post("/suggest-priority")
@limiter.limit(settings.LLM_RATE_LIMIT)
async def suggest_priority(request: Request, req: SuggestPriorityRequest, user: User = Depends(get_current_user)):
    return {"success": True, "data": planning.suggest_priority(req.goal_description)}


@router.post("/estimate-time")
@limiter.limit(settings.LLM_RATE_LIMIT)
async def estimate_time(request: Request, req: EstimateTimeRequest, user: User = Depends(get_current_user)):
    return {"success": True, "data": planning.estimate_time(req.goal_description, req.subtasks, req.context)}


@router.post("/chat")
@limiter.limit(settings.LLM_RATE_LIMIT)
async def chat(request: Request, req: ChatRequest, user: User = Depends(get_current_user)):
    return {"success": True, "data": planning.chat_reply(req.messages)}


@router.get("/status")
async def llm_status(user: User = Depends(get_current_user), ai: AIService = Depends(get_ai_service)):
    return {"success": True, "data": ai.status()}
