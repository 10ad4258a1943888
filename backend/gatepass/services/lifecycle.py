"""
Gatepass lifecycle manager.

Validates submissions, applies status transitions through the store's
compare-and-set, and hands notification intents to the dispatcher once the
write has committed.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union
from uuid import UUID

from pydantic import ValidationError

from gatepass.database_types import utcnow
from gatepass.models.gatepass_request import GatepassRequest, GatepassStatus
from gatepass.schemas.gatepass import GatepassRequestCreate
from gatepass.services.exceptions import InvalidInputError
from gatepass.services.notifications import NotificationDispatcher, NotificationIntent, RecipientRole
from gatepass.services.state_machine import GatepassEvent, derived_fields, resolve_event
from gatepass.services.store import GatepassStore

logger = logging.getLogger(__name__)


class LifecycleManager:
    """Owns the gatepass status machine. Constructed once per application."""

    def __init__(
        self,
        store: GatepassStore,
        dispatcher: NotificationDispatcher,
        app_base_url: str,
        student_email_domain: str = "college.edu",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.app_base_url = app_base_url.rstrip("/")
        self.student_email_domain = student_email_domain
        self.clock = clock

    def approval_link(self, request_id: Union[str, UUID]) -> str:
        """Link emailed to the parent. The id is the only credential."""
        return f"{self.app_base_url}/parent-approval/{request_id}"

    async def submit_request(
        self,
        payload: Union[GatepassRequestCreate, Mapping[str, Any]],
    ) -> GatepassRequest:
        """
        Create a request in Pending Parent Approval and notify the parent.

        Raises:
            InvalidInputError: If a required field is missing or malformed
            TransientError: If the store is unreachable
        """
        if not isinstance(payload, GatepassRequestCreate):
            try:
                payload = GatepassRequestCreate.model_validate(payload)
            except ValidationError as e:
                raise InvalidInputError(
                    f"Invalid gatepass request: {e.error_count()} error(s)",
                    errors=e.errors(include_url=False, include_context=False),
                )

        now = self.clock()
        fields = payload.model_dump()
        if not fields.get("student_email"):
            fields["student_email"] = f"{payload.roll_number}@{self.student_email_domain}"
        fields.update(
            status=GatepassStatus.PENDING_PARENT_APPROVAL,
            created_at=now,
            updated_at=now,
        )

        request = await self.store.create(fields)
        link = self.approval_link(request.id)

        logger.info(
            f"Gatepass request created for {request.roll_number}",
            extra={"request_id": str(request.id), "approval_link": link},
        )

        self._emit(NotificationIntent(
            recipient_role=RecipientRole.PARENT,
            request=request,
            prior_status=None,
            new_status=GatepassStatus.PENDING_PARENT_APPROVAL,
            approval_link=link,
        ))
        return request

    async def get_request(self, request_id: Union[str, UUID]) -> GatepassRequest:
        return await self.store.get_by_id(request_id)

    async def list_requests(
        self,
        status: Optional[GatepassStatus] = None,
        search: Optional[str] = None,
    ) -> list[GatepassRequest]:
        """All requests, newest first, optionally filtered for the dashboard."""
        return await self.store.list_all(status=status, search=search)

    async def parent_approve(self, request_id: Union[str, UUID]) -> GatepassRequest:
        return await self.transition(request_id, GatepassEvent.PARENT_APPROVE)

    async def parent_reject(
        self,
        request_id: Union[str, UUID],
        rejection_reason: Optional[str] = None,
    ) -> GatepassRequest:
        return await self.transition(
            request_id, GatepassEvent.PARENT_REJECT, rejection_reason=rejection_reason
        )

    async def warden_approve(
        self,
        request_id: Union[str, UUID],
        notes: Optional[str] = None,
    ) -> GatepassRequest:
        return await self.transition(request_id, GatepassEvent.WARDEN_APPROVE, notes=notes)

    async def warden_deny(
        self,
        request_id: Union[str, UUID],
        notes: Optional[str] = None,
    ) -> GatepassRequest:
        return await self.transition(request_id, GatepassEvent.WARDEN_DENY, notes=notes)

    async def complete(self, request_id: Union[str, UUID]) -> GatepassRequest:
        return await self.transition(request_id, GatepassEvent.COMPLETE)

    async def transition(
        self,
        request_id: Union[str, UUID],
        event: GatepassEvent,
        rejection_reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> GatepassRequest:
        """
        Apply an event to a request.

        Args:
            request_id: ID of the request (from the approval link or dashboard)
            event: Which decision is being made
            rejection_reason: Parent's reason, only stored on PARENT_REJECT
            notes: Warden's notes, only stored on warden decisions

        Returns:
            The updated GatepassRequest

        Raises:
            NotFoundError: If the id is unknown or malformed
            ConflictError: If the request is not in the event's source status
            TransientError: If the store timed out (safe to retry)
        """
        from_status, to_status = resolve_event(event)
        fields = derived_fields(
            to_status,
            self.clock(),
            rejection_reason=_clean(rejection_reason),
            notes=_clean(notes),
        )

        request = await self.store.update_status(request_id, from_status, fields)

        logger.info(
            f"Gatepass transition: {from_status.value} → {to_status.value}",
            extra={"request_id": str(request.id), "event": event.value},
        )

        intent = self._intent_for(event, request, from_status, to_status)
        if intent is not None:
            self._emit(intent)

        return request

    def _intent_for(
        self,
        event: GatepassEvent,
        request: GatepassRequest,
        prior_status: GatepassStatus,
        new_status: GatepassStatus,
    ) -> Optional[NotificationIntent]:
        if event in (GatepassEvent.PARENT_APPROVE, GatepassEvent.PARENT_REJECT):
            return NotificationIntent(
                recipient_role=RecipientRole.WARDEN,
                request=request,
                prior_status=prior_status,
                new_status=new_status,
                approval_link=self.approval_link(request.id),
            )
        # Warden decisions and completion are visible on the dashboard only
        return None

    def _emit(self, intent: NotificationIntent) -> None:
        # The transition already committed; a dropped intent is only logged
        self.dispatcher.submit(intent)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None
