import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.core.database import build_engine, build_session_factory, init_db
from app.core.errors import ConflictError, NotFoundError, goal_not_found, subtask_not_found
from app.models.goal import Goal as GoalRow, Subtask as SubtaskRow, new_id, utcnow
from app.models.user import User as UserRow
from app.schemas.goal import (
    Goal, GoalCreate, GoalFilters, GoalStatus, GoalUpdate, Subtask, SubtaskCreate, SubtaskUpdate,
)
from app.schemas.user import User
from app.services.completion import assert_consistent, check_explicit_status, derive_goal_status, resolve_status
from app.services.store import GoalLocks

logger = logging.getLogger(__name__)


class SqlGoalStore:
    """GoalStore backed by async SQLAlchemy (PostgreSQL/asyncpg, SQLite/aiosqlite).

    Each command runs in one transaction. Subtask mutations hold the goal's
    in-process lock and a row lock on the goal for the duration.
    """

    def __init__(self, engine: AsyncEngine, session_factory: Optional[async_sessionmaker] = None):
        self._engine = engine
        self._session_factory = session_factory or build_session_factory(engine)
        self._locks = GoalLocks()

    @classmethod
    def from_url(cls, url: str) -> "SqlGoalStore":
        return cls(build_engine(url))

    async def init(self) -> None:
        await init_db(self._engine)

    async def close(self) -> None:
        await self._engine.dispose()

    # --- helpers ---

    async def _owned_goal(self, session: AsyncSession, owner_id: str, goal_id: str, lock: bool = False) -> GoalRow:
        stmt = (
            select(GoalRow)
            .options(selectinload(GoalRow.subtasks))
            .where(GoalRow.id == goal_id, GoalRow.owner_id == owner_id)
        )
        if lock:
            stmt = stmt.with_for_update()
        goal = (await session.execute(stmt)).scalar_one_or_none()
        if goal is None:
            raise goal_not_found()
        return goal

    async def _subtask_goal_id(self, owner_id: str, subtask_id: str) -> str:
        async with self._session_factory() as session:
            stmt = (
                select(SubtaskRow.goal_id)
                .join(GoalRow, GoalRow.id == SubtaskRow.goal_id)
                .where(SubtaskRow.id == subtask_id, GoalRow.owner_id == owner_id)
            )
            goal_id = (await session.execute(stmt)).scalar_one_or_none()
        if goal_id is None:
            raise subtask_not_found()
        return goal_id

    @staticmethod
    def _find_subtask(goal: GoalRow, subtask_id: str) -> SubtaskRow:
        for subtask in goal.subtasks:
            if subtask.id == subtask_id:
                return subtask
        raise subtask_not_found()

    @staticmethod
    def _new_subtask_row(goal_id: str, position: int, data: SubtaskCreate) -> SubtaskRow:
        now = utcnow()
        return SubtaskRow(
            id=new_id(),
            goal_id=goal_id,
            position=position,
            title=data.title,
            description=data.description,
            completed=data.completed,
            estimated_hours=data.estimated_hours,
            category=data.category,
            skills=list(data.skills),
            dependencies=list(data.dependencies),
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    def _recompute(goal: GoalRow) -> None:
        flags = [s.completed for s in goal.subtasks]
        current = GoalStatus(goal.status)
        new_status = resolve_status(goal.id, current, flags)
        if new_status is not None:
            goal.status = new_status.value
            goal.updated_at = utcnow()
        assert_consistent(goal.id, GoalStatus(goal.status), flags)

    # --- goals ---

    async def list_goals(self, owner_id: str, filters: Optional[GoalFilters] = None) -> List[Goal]:
        filters = filters or GoalFilters()
        stmt = (
            select(GoalRow)
            .options(selectinload(GoalRow.subtasks))
            .where(GoalRow.owner_id == owner_id)
            .order_by(GoalRow.created_at.desc())
        )
        if filters.status is not None:
            stmt = stmt.where(GoalRow.status == filters.status.value)
        if filters.priority is not None:
            stmt = stmt.where(GoalRow.priority == filters.priority.value)
        if filters.due_date is not None:
            stmt = stmt.where(GoalRow.due_date == filters.due_date)
        if filters.due_from is not None:
            stmt = stmt.where(GoalRow.due_date >= filters.due_from)
        if filters.due_to is not None:
            stmt = stmt.where(GoalRow.due_date <= filters.due_to)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [Goal.model_validate(row) for row in rows]

    async def get_goal(self, owner_id: str, goal_id: str) -> Goal:
        async with self._session_factory() as session:
            return Goal.model_validate(await self._owned_goal(session, owner_id, goal_id))

    async def create_goal(self, owner_id: str, data: GoalCreate) -> Goal:
        flags = [s.completed for s in data.subtasks]
        if "status" in data.model_fields_set:
            check_explicit_status(data.status, flags)

        now = utcnow()
        goal = GoalRow(
            id=new_id(),
            owner_id=owner_id,
            title=data.title,
            description=data.description,
            priority=data.priority.value,
            status=derive_goal_status(data.status, flags).value,
            due_date=data.due_date,
            created_at=now,
            updated_at=now,
        )
        goal.subtasks = [self._new_subtask_row(goal.id, i, s) for i, s in enumerate(data.subtasks)]

        async with self._session_factory() as session, session.begin():
            session.add(goal)
            await session.flush()
            record = Goal.model_validate(goal)

        logger.info("Goal created: %s by user %s", goal.id, owner_id)
        return record

    async def update_goal(self, owner_id: str, goal_id: str, data: GoalUpdate) -> Goal:
        async with self._locks.hold(goal_id):
            async with self._session_factory() as session, session.begin():
                goal = await self._owned_goal(session, owner_id, goal_id, lock=True)
                changes = data.model_dump(include=data.model_fields_set)
                if "status" in changes:
                    check_explicit_status(changes["status"], [s.completed for s in goal.subtasks])

                for field, value in changes.items():
                    setattr(goal, field, getattr(value, "value", value))
                goal.updated_at = utcnow()
                await session.flush()
                record = Goal.model_validate(goal)

        logger.info("Goal updated: %s by user %s", goal_id, owner_id)
        return record

    async def delete_goal(self, owner_id: str, goal_id: str) -> None:
        async with self._locks.hold(goal_id):
            async with self._session_factory() as session, session.begin():
                goal = await self._owned_goal(session, owner_id, goal_id, lock=True)
                await session.delete(goal)

        logger.info("Goal deleted: %s by user %s", goal_id, owner_id)

    # --- subtasks ---

    async def add_subtask(self, owner_id: str, goal_id: str, data: SubtaskCreate) -> Subtask:
        async with self._locks.hold(goal_id):
            async with self._session_factory() as session, session.begin():
                goal = await self._owned_goal(session, owner_id, goal_id, lock=True)
                position = max((s.position for s in goal.subtasks), default=-1) + 1
                subtask = self._new_subtask_row(goal_id, position, data)
                goal.subtasks.append(subtask)
                self._recompute(goal)
                await session.flush()
                record = Subtask.model_validate(subtask)

        logger.info("Subtask added: %s to goal %s by user %s", record.id, goal_id, owner_id)
        return record

    async def update_subtask(self, owner_id: str, goal_id: str, subtask_id: str, data: SubtaskUpdate) -> Subtask:
        async with self._locks.hold(goal_id):
            async with self._session_factory() as session, session.begin():
                goal = await self._owned_goal(session, owner_id, goal_id, lock=True)
                subtask = self._find_subtask(goal, subtask_id)
                for field, value in data.model_dump(include=data.model_fields_set).items():
                    setattr(subtask, field, value)
                subtask.updated_at = utcnow()
                self._recompute(goal)
                await session.flush()
                record = Subtask.model_validate(subtask)

        logger.info("Subtask updated: %s by user %s", subtask_id, owner_id)
        return record

    async def toggle_subtask(self, owner_id: str, subtask_id: str) -> Subtask:
        goal_id = await self._subtask_goal_id(owner_id, subtask_id)
        async with self._locks.hold(goal_id):
            async with self._session_factory() as session, session.begin():
                goal = await self._owned_goal(session, owner_id, goal_id, lock=True)
                subtask = self._find_subtask(goal, subtask_id)
                subtask.completed = not subtask.completed
                subtask.updated_at = utcnow()
                self._recompute(goal)
                await session.flush()
                record = Subtask.model_validate(subtask)

        logger.info("Subtask toggled: %s by user %s", subtask_id, owner_id)
        return record

    async def delete_subtask(self, owner_id: str, goal_id: str, subtask_id: str) -> None:
        async with self._locks.hold(goal_id):
            async with self._session_factory() as session, session.begin():
                goal = await self._owned_goal(session, owner_id, goal_id, lock=True)
                goal.subtasks.remove(self._find_subtask(goal, subtask_id))
                self._recompute(goal)

        logger.info("Subtask deleted: %s by user %s", subtask_id, owner_id)

    # --- users ---

    async def create_user(self, email: str, password_hash: str, first_name: Optional[str] = None,
                          last_name: Optional[str] = None) -> User:
        user = UserRow(
            id=new_id(),
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            created_at=utcnow(),
        )
        try:
            async with self._session_factory() as session, session.begin():
                session.add(user)
        except IntegrityError:
            raise ConflictError("User with this email already exists")

        logger.info("New user registered: %s", email)
        return User.model_validate(user)

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self._session_factory() as session:
            user = await session.get(UserRow, user_id)
            return User.model_validate(user) if user is not None else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        async with self._session_factory() as session:
            user = (await session.execute(select(UserRow).where(UserRow.email == email))).scalar_one_or_none()
            return User.model_validate(user) if user is not None else None

    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> User:
        async with self._session_factory() as session, session.begin():
            user = await session.get(UserRow, user_id)
            if user is None:
                raise NotFoundError("User not found")
            for field, value in changes.items():
                setattr(user, field, value)
            await session.flush()
            return User.model_validate(user)
