import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

from app.core.config import Settings
from app.schemas.goal import Goal, GoalCreate, GoalFilters, GoalUpdate, Subtask, SubtaskCreate, SubtaskUpdate
from app.schemas.user import User

logger = logging.getLogger(__name__)


class GoalStore(Protocol):
    """Persistence port for goals, subtasks and users.

    Every goal/subtask operation is scoped by ``owner_id``; an entity owned by
    someone else raises the same NotFoundError as a missing one. Subtask
    mutations apply the completion rule before returning.
    """

    async def list_goals(self, owner_id: str, filters: Optional[GoalFilters] = None) -> List[Goal]: ...

    async def get_goal(self, owner_id: str, goal_id: str) -> Goal: ...

    async def create_goal(self, owner_id: str, data: GoalCreate) -> Goal: ...

    async def update_goal(self, owner_id: str, goal_id: str, data: GoalUpdate) -> Goal: ...

    async def delete_goal(self, owner_id: str, goal_id: str) -> None: ...

    async def add_subtask(self, owner_id: str, goal_id: str, data: SubtaskCreate) -> Subtask: ...

    async def update_subtask(self, owner_id: str, goal_id: str, subtask_id: str, data: SubtaskUpdate) -> Subtask: ...

    async def toggle_subtask(self, owner_id: str, subtask_id: str) -> Subtask: ...

    async def delete_subtask(self, owner_id: str, goal_id: str, subtask_id: str) -> None: ...

    async def create_user(self, email: str, password_hash: str, first_name: Optional[str] = None,
                          last_name: Optional[str] = None) -> User: ...

    async def get_user(self, user_id: str) -> Optional[User]: ...

    async def get_user_by_email(self, email: str) -> Optional[User]: ...

    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> User: ...

    async def close(self) -> None: ...


class GoalLocks:
    """One asyncio.Lock per goal id, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, goal_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(goal_id)
        if lock is None:
            lock = self._locks[goal_id] = asyncio.Lock()
        self._users[goal_id] = self._users.get(goal_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[goal_id] -= 1
            if self._users[goal_id] == 0:
                del self._users[goal_id]
                del self._locks[goal_id]

    def __len__(self) -> int:
        return len(self._locks)


async def create_store(settings: Settings) -> GoalStore:
    """Build the durable store when a database is configured, else the in-memory one."""
    if settings.database_configured:
        from app.services.sql_store import SqlGoalStore

        store = SqlGoalStore.from_url(settings.async_database_url)
        await store.init()
        logger.info("Using database store")
        return store

    from app.services.memory_store import InMemoryGoalStore

    logger.warning("DATABASE_URL not configured, using in-memory store")
    return InMemoryGoalStore()
