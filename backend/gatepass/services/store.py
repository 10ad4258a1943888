"""
Persistence store for gatepass requests.

Every call runs in its own session under a bounded timeout. Writes commit
after the timed work, so a timeout always means nothing was written. Status
changes use a compare-and-set on the stored status, so two actors racing on
the same request cannot both win.
"""
import asyncio
import logging
from typing import Any, Dict, Optional, Union
from uuid import UUID

from sqlalchemy import select, update, or_
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gatepass.models.gatepass_request import GatepassRequest, GatepassStatus
from gatepass.services.exceptions import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    TransientError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


def parse_request_id(request_id: Union[str, UUID]) -> UUID:
    """Parse an identifier from a link or route; malformed ids are simply not found."""
    if isinstance(request_id, UUID):
        return request_id
    try:
        return UUID(str(request_id))
    except (ValueError, TypeError):
        raise NotFoundError(f"Gatepass request {request_id} not found")


class GatepassStore:
    """Create/read/conditional-update/list access to gatepass_requests."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.session_factory = session_factory
        self.timeout_seconds = timeout_seconds

    async def _run(self, operation: str, coro):
        """Await a store coroutine with the timeout, mapping connectivity errors to TransientError."""
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Store {operation} timed out after {self.timeout_seconds}s")
            raise TransientError(f"Database {operation} timed out")
        except (OperationalError, InterfaceError) as e:
            logger.warning(f"Store {operation} failed: {str(e)}")
            raise TransientError(f"Database unavailable during {operation}")

    async def _commit(self, db: AsyncSession, operation: str) -> None:
        """Commit outside the timeout; a cancelled commit may still have been applied."""
        try:
            await db.commit()
        except (OperationalError, InterfaceError) as e:
            logger.error(f"Store {operation} commit failed: {str(e)}")
            raise TransientError(f"Database unavailable during {operation} commit")

    async def create(self, fields: Dict[str, Any]) -> GatepassRequest:
        async with self.session_factory() as db:
            record = await self._run("create", self._create(db, fields))
            await self._commit(db, "create")
            return record

    async def get_by_id(self, request_id: Union[str, UUID]) -> GatepassRequest:
        key = parse_request_id(request_id)
        return await self._run("get", self._get_by_id(key))

    async def update_status(
        self,
        request_id: Union[str, UUID],
        expected_status: GatepassStatus,
        new_fields: Dict[str, Any],
    ) -> GatepassRequest:
        """
        Compare-and-set the status of one request.

        The UPDATE and the read of the resulting row share one transaction, so
        the returned record is exactly what this call committed.
        """
        key = parse_request_id(request_id)
        async with self.session_factory() as db:
            record = await self._run(
                "update", self._update_status(db, key, expected_status, new_fields)
            )
            await self._commit(db, "update")
            return record

    async def list_all(
        self,
        status: Optional[GatepassStatus] = None,
        search: Optional[str] = None,
    ) -> list[GatepassRequest]:
        return await self._run("list", self._list_all(status, search))

    async def _create(self, db: AsyncSession, fields: Dict[str, Any]) -> GatepassRequest:
        record = GatepassRequest(**fields)
        db.add(record)
        try:
            await db.flush()
        except IntegrityError as e:
            await db.rollback()
            raise InvalidInputError(f"Gatepass request rejected by database: {e.orig}")
        await db.refresh(record)
        return record

    async def _get_by_id(self, key: UUID) -> GatepassRequest:
        async with self.session_factory() as db:
            result = await db.execute(
                select(GatepassRequest).where(GatepassRequest.id == key)
            )
            record = result.scalar_one_or_none()
            if not record:
                raise NotFoundError(f"Gatepass request {key} not found")
            return record

    async def _update_status(
        self,
        db: AsyncSession,
        key: UUID,
        expected_status: GatepassStatus,
        new_fields: Dict[str, Any],
    ) -> GatepassRequest:
        # Compare-and-set: only applies if nobody moved the request first
        result = await db.execute(
            update(GatepassRequest)
            .where(
                GatepassRequest.id == key,
                GatepassRequest.status == expected_status,
            )
            .values(**new_fields)
            .execution_options(synchronize_session=False)
        )

        # Read back before commit, while this transaction still owns the row
        current = (await db.execute(
            select(GatepassRequest).where(GatepassRequest.id == key)
        )).scalar_one_or_none()

        if current is None:
            raise NotFoundError(f"Gatepass request {key} not found")

        if result.rowcount != 1:
            raise ConflictError(
                f"Gatepass request {key} is {current.status.value}, expected {expected_status.value}",
                request=current,
            )

        return current

    async def _list_all(
        self,
        status: Optional[GatepassStatus],
        search: Optional[str],
    ) -> list[GatepassRequest]:
        async with self.session_factory() as db:
            query = select(GatepassRequest)
            if status is not None:
                query = query.where(GatepassRequest.status == status)
            if search:
                pattern = f"%{search.strip()}%"
                query = query.where(
                    or_(
                        GatepassRequest.student_name.ilike(pattern),
                        GatepassRequest.roll_number.ilike(pattern),
                    )
                )
            # Newest first (dashboard order)
            query = query.order_by(GatepassRequest.created_at.desc())
            result = await db.execute(query)
            return list(result.scalars().all())
