from typing import Optional

from fastapi import APIRouter, Depends, Query, status as http_status

from app.api.deps import get_current_user, get_goal_service
from app.schemas.goal import GoalCreate, GoalStatus, GoalUpdate, Priority, SubtaskCreate, SubtaskUpdate
from app.schemas.user import User
from app.services.goal_service import GoalService

router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("")
async def list_goals(
    status: Optional[GoalStatus] = None,
    priority: Optional[Priority] = None,
    date: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    user: User = Depends(get_current_user),
    service: GoalService = Depends(get_goal_service),
):
    filters = {"status": status, "priority": priority, "due_date": date, "due_from": start_date, "due_to": end_date}
    goals = await service.list_goals(user.id, {k: v for k, v in filters.items() if v})
    return {"success": True, "data": {"goals": goals}}


@router.post("", status_code=http_status.HTTP_201_CREATED)
async def create_goal(req: GoalCreate, user: User = Depends(get_current_user),
                      service: GoalService = Depends(get_goal_service)):
    goal = await service.create_goal(user.id, req)
    return {"success": True, "message": "Goal created successfully", "data": {"goal": goal}}


@router.get("/stats")
async def dashboard_stats(user: User = Depends(get_current_user), service: GoalService = Depends(get_goal_service)):
    return {"success": True, "data": {"stats": await service.dashboard_stats(user.id)}}


@router.get("/date-range")
async def goals_by_date_range(
    start_date: str = Query(..., alias="startDate"),
    end_date: str = Query(..., alias="endDate"),
    user: User = Depends(get_current_user),
    service: GoalService = Depends(get_goal_service),
):
    grouped = await service.goals_by_date_range(user.id, start_date, end_date)
    return {"success": True, "data": {"goalsByDate": grouped}}


@router.get("/date/{day}")
async def goals_by_date(day: str, user: User = Depends(get_current_user),
                        service: GoalService = Depends(get_goal_service)):
    return {"success": True, "data": {"goals": await service.goals_by_date(user.id, day)}}


@router.put("/subtasks/{subtask_id}/toggle")
async def toggle_subtask(subtask_id: str, user: User = Depends(get_current_user),
                         service: GoalService = Depends(get_goal_service)):
    subtask = await service.toggle_subtask(user.id, subtask_id)
    return {"success": True, "message": "Subtask updated successfully", "data": {"subtask": subtask}}


@router.get("/{goal_id}")
async def get_goal(goal_id: str, user: User = Depends(get_current_user),
                   service: GoalService = Depends(get_goal_service)):
    return {"success": True, "data": {"goal": await service.get_goal(user.id, goal_id)}}


@router.put("/{goal_id}")
async def update_goal(goal_id: str, req: GoalUpdate, user: User = Depends(get_current_user),
                      service: GoalService = Depends(get_goal_service)):
    goal = await service.update_goal(user.id, goal_id, req)
    return {"success": True, "message": "Goal updated successfully", "data": {"goal": goal}}


@router.delete("/{goal_id}")
async def delete_goal(goal_id: str, user: User = Depends(get_current_user),
                      service: GoalService = Depends(get_goal_service)):
    await service.delete_goal(user.id, goal_id)
    return {"success": True, "message": "Goal deleted successfully"}


@router.post("/{goal_id}/subtasks", status_code=http_status.HTTP_201_CREATED)
async def add_subtask(goal_id: str, req: SubtaskCreate, user: User = Depends(get_current_user),
                      service: GoalService = Depends(get_goal_service)):
    subtask = await service.add_subtask(user.id, goal_id, req)
    return {"success": True, "message": "Subtask added successfully", "data": {"subtask": subtask}}


@router.put("/{goal_id}/subtasks/{subtask_id}")
async def update_subtask(goal_id: str, subtask_id: str, req: SubtaskUpdate,
                         user: User = Depends(get_current_user), service: GoalService = Depends(get_goal_service)):
    subtask = await service.update_subtask(user.id, goal_id, subtask_id, req)
    return {"success": True, "message": "Subtask updated successfully", "data": {"subtask": subtask}}


@router.delete("/{goal_id}/subtasks/{subtask_id}")
async def delete_subtask(goal_id: str, subtask_id: str,
                         user: User = Depends(get_current_user), service: GoalService = Depends(get_goal_service)):
    await service.delete_subtask(user.id, goal_id, subtask_id)
    return {"success": True, "message": "Subtask deleted successfully"}
