import logging
from typing import Any, Dict, List, Optional

from app.core.errors import ConflictError, NotFoundError, goal_not_found, subtask_not_found
from app.models.goal import new_id, utcnow
from app.schemas.goal import Goal, GoalCreate, GoalFilters, GoalUpdate, Subtask, SubtaskCreate, SubtaskUpdate
from app.schemas.user import User
from app.services.completion import assert_consistent, check_explicit_status, derive_goal_status, resolve_status
from app.services.store import GoalLocks

logger = logging.getLogger(__name__)


class InMemoryGoalStore:
    """Process-local GoalStore used when no database is configured.

    Rows are plain dicts; callers only ever see freshly built records. A
    mutation builds its new rows first and publishes them last, so a failed
    command leaves nothing behind.
    """

    def __init__(self):
        self._goals: Dict[str, dict] = {}
        self._subtasks: Dict[str, dict] = {}
        self._users: Dict[str, dict] = {}
        self._locks = GoalLocks()

    # --- helpers ---

    def _owned_goal(self, owner_id: str, goal_id: str) -> dict:
        goal = self._goals.get(goal_id)
        if goal is None or goal["owner_id"] != owner_id:
            raise goal_not_found()
        return goal

    def _owned_subtask(self, owner_id: str, subtask_id: str, goal_id: Optional[str] = None) -> dict:
        subtask = self._subtasks.get(subtask_id)
        if subtask is None or (goal_id is not None and subtask["goal_id"] != goal_id):
            raise subtask_not_found()
        goal = self._goals.get(subtask["goal_id"])
        if goal is None or goal["owner_id"] != owner_id:
            raise subtask_not_found()
        return subtask

    def _subtasks_of(self, goal_id: str) -> List[dict]:
        return [s for s in self._subtasks.values() if s["goal_id"] == goal_id]

    def _subtask_record(self, row: dict) -> Subtask:
        return Subtask.model_validate({**row, "skills": list(row["skills"]), "dependencies": list(row["dependencies"])})

    def _goal_record(self, row: dict) -> Goal:
        subtasks = [self._subtask_record(s) for s in self._subtasks_of(row["id"])]
        return Goal.model_validate({**row, "subtasks": subtasks})

    def _new_subtask_row(self, goal_id: str, data: SubtaskCreate) -> dict:
        now = utcnow()
        return {
            "id": new_id(),
            "goal_id": goal_id,
            "title": data.title,
            "description": data.description,
            "completed": data.completed,
            "estimated_hours": data.estimated_hours,
            "category": data.category,
            "skills": list(data.skills),
            "dependencies": list(data.dependencies),
            "created_at": now,
            "updated_at": now,
        }

    def _recompute(self, goal_id: str) -> None:
        goal = self._goals[goal_id]
        flags = [s["completed"] for s in self._subtasks_of(goal_id)]
        new_status = resolve_status(goal_id, goal["status"], flags)
        if new_status is not None:
            self._goals[goal_id] = {**goal, "status": new_status, "updated_at": utcnow()}
        assert_consistent(goal_id, self._goals[goal_id]["status"], flags)

    # --- goals ---

    async def list_goals(self, owner_id: str, filters: Optional[GoalFilters] = None) -> List[Goal]:
        filters = filters or GoalFilters()
        records = [self._goal_record(g) for g in reversed(list(self._goals.values())) if g["owner_id"] == owner_id]
        return [g for g in records if filters.matches(g)]

    async def get_goal(self, owner_id: str, goal_id: str) -> Goal:
        return self._goal_record(self._owned_goal(owner_id, goal_id))

    async def create_goal(self, owner_id: str, data: GoalCreate) -> Goal:
        flags = [s.completed for s in data.subtasks]
        if "status" in data.model_fields_set:
            check_explicit_status(data.status, flags)

        now = utcnow()
        goal = {
            "id": new_id(),
            "owner_id": owner_id,
            "title": data.title,
            "description": data.description,
            "priority": data.priority,
            "status": derive_goal_status(data.status, flags),
            "due_date": data.due_date,
            "created_at": now,
            "updated_at": now,
        }
        subtasks = [self._new_subtask_row(goal["id"], s) for s in data.subtasks]

        self._goals[goal["id"]] = goal
        for row in subtasks:
            self._subtasks[row["id"]] = row

        logger.info("Goal created (in-memory): %s by user %s", goal["id"], owner_id)
        return self._goal_record(goal)

    async def update_goal(self, owner_id: str, goal_id: str, data: GoalUpdate) -> Goal:
        async with self._locks.hold(goal_id):
            goal = self._owned_goal(owner_id, goal_id)
            changes = data.model_dump(include=data.model_fields_set)
            if "status" in changes:
                check_explicit_status(changes["status"], [s["completed"] for s in self._subtasks_of(goal_id)])

            self._goals[goal_id] = {**goal, **changes, "updated_at": utcnow()}
            logger.info("Goal updated (in-memory): %s by user %s", goal_id, owner_id)
            return self._goal_record(self._goals[goal_id])

    async def delete_goal(self, owner_id: str, goal_id: str) -> None:
        async with self._locks.hold(goal_id):
            self._owned_goal(owner_id, goal_id)
            for row in self._subtasks_of(goal_id):
                del self._subtasks[row["id"]]
            del self._goals[goal_id]
            logger.info("Goal deleted (in-memory): %s by user %s", goal_id, owner_id)

    # --- subtasks ---

    async def add_subtask(self, owner_id: str, goal_id: str, data: SubtaskCreate) -> Subtask:
        async with self._locks.hold(goal_id):
            self._owned_goal(owner_id, goal_id)
            row = self._new_subtask_row(goal_id, data)
            self._subtasks[row["id"]] = row
            self._recompute(goal_id)
            logger.info("Subtask added (in-memory): %s to goal %s by user %s", row["id"], goal_id, owner_id)
            return self._subtask_record(row)

    async def update_subtask(self, owner_id: str, goal_id: str, subtask_id: str, data: SubtaskUpdate) -> Subtask:
        async with self._locks.hold(goal_id):
            subtask = self._owned_subtask(owner_id, subtask_id, goal_id)
            changes = data.model_dump(include=data.model_fields_set)
            self._subtasks[subtask_id] = {**subtask, **changes, "updated_at": utcnow()}
            self._recompute(goal_id)
            logger.info("Subtask updated (in-memory): %s by user %s", subtask_id, owner_id)
            return self._subtask_record(self._subtasks[subtask_id])

    async def toggle_subtask(self, owner_id: str, subtask_id: str) -> Subtask:
        goal_id = self._owned_subtask(owner_id, subtask_id)["goal_id"]
        async with self._locks.hold(goal_id):
            # the subtask may have been deleted while we waited
            subtask = self._owned_subtask(owner_id, subtask_id, goal_id)
            self._subtasks[subtask_id] = {**subtask, "completed": not subtask["completed"], "updated_at": utcnow()}
            self._recompute(goal_id)
            logger.info("Subtask toggled (in-memory): %s by user %s", subtask_id, owner_id)
            return self._subtask_record(self._subtasks[subtask_id])

    async def delete_subtask(self, owner_id: str, goal_id: str, subtask_id: str) -> None:
        async with self._locks.hold(goal_id):
            self._owned_subtask(owner_id, subtask_id, goal_id)
            del self._subtasks[subtask_id]
            self._recompute(goal_id)
            logger.info("Subtask deleted (in-memory): %s by user %s", subtask_id, owner_id)

    # --- users ---

    async def create_user(self, email: str, password_hash: str, first_name: Optional[str] = None,
                          last_name: Optional[str] = None) -> User:
        if await self.get_user_by_email(email) is not None:
            raise ConflictError("User with this email already exists")
        row = {
            "id": new_id(),
            "email": email,
            "password_hash": password_hash,
            "first_name": first_name,
            "last_name": last_name,
            "created_at": utcnow(),
        }
        self._users[row["id"]] = row
        logger.info("New user registered (in-memory): %s", email)
        return User.model_validate(row)

    async def get_user(self, user_id: str) -> Optional[User]:
        row = self._users.get(user_id)
        return User.model_validate(row) if row is not None else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        for row in self._users.values():
            if row["email"] == email:
                return User.model_validate(row)
        return None

    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> User:
        row = self._users.get(user_id)
        if row is None:
            raise NotFoundError("User not found")
        self._users[user_id] = {**row, **changes}
        return User.model_validate(self._users[user_id])

    async def close(self) -> None:
        self._goals.clear()
        self._subtasks.clear()
        self._users.clear()
