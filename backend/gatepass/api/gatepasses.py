"""
Gatepass API endpoints.
Handles student submissions, parent decisions from the approval link and
the warden dashboard.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from gatepass.models.gatepass_request import GatepassStatus
from gatepass.schemas.gatepass import (
    GatepassCreateResponse,
    GatepassRequestCreate,
    GatepassResponse,
    ParentDecisionAction,
    WardenDecisionAction,
)
from gatepass.services.lifecycle import LifecycleManager

logger = logging.getLogger(__name__)
router = APIRouter()


def get_lifecycle_manager(request: Request) -> LifecycleManager:
    """Dependency returning the manager built in the application lifespan."""
    return request.app.state.lifecycle


# Endpoints
@router.post("/", response_model=GatepassCreateResponse, status_code=201)
async def submit_gatepass_request(
    payload: GatepassRequestCreate,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    """
    Submit a new gatepass request.

    The request starts in "Pending Parent Approval" and the parent is emailed
    an approval link.
    """
    record = await lifecycle.submit_request(payload)
    response = GatepassResponse.model_validate(record)
    return GatepassCreateResponse(
        **response.model_dump(),
        approval_link=lifecycle.approval_link(record.id),
    )


@router.get("/", response_model=list[GatepassResponse])
async def list_gatepass_requests(
    status: Optional[GatepassStatus] = Query(None, description="Filter by status"),
    q: Optional[str] = Query(None, description="Search by student name or roll number"),
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    """
    List gatepass requests for the warden dashboard, newest first.

    The dashboard polls this endpoint; results are not transactionally
    consistent with concurrent decisions.
    """
    return await lifecycle.list_requests(status=status, search=q)


@router.get("/{request_id}", response_model=GatepassResponse)
async def get_gatepass_request(
    request_id: str,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    """Get a gatepass request by ID (used by the parent approval page)."""
    return await lifecycle.get_request(request_id)


@router.post("/{request_id}/parent-decision", response_model=GatepassResponse)
async def parent_decision(
    request_id: str,
    action: ParentDecisionAction,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    """
    Approve or reject a request from the parent approval link.

    Returns 409 if the request was already decided.
    """
    if action.approved:
        record = await lifecycle.parent_approve(request_id)
    else:
        record = await lifecycle.parent_reject(request_id, action.rejection_reason)
    logger.info(f"Parent decision recorded for {request_id}: {record.status.value}")
    return record


@router.post("/{request_id}/warden-decision", response_model=GatepassResponse)
async def warden_decision(
    request_id: str,
    action: WardenDecisionAction,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    """
    Final warden approval or denial.

    Only valid once the parent has approved; returns 409 otherwise.
    """
    if action.approved:
        record = await lifecycle.warden_approve(request_id, action.notes)
    else:
        record = await lifecycle.warden_deny(request_id, action.notes)
    logger.info(f"Warden decision recorded for {request_id}: {record.status.value}")
    return record


@router.post("/{request_id}/complete", response_model=GatepassResponse)
async def complete_gatepass(
    request_id: str,
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    """Close a warden-approved gatepass once the student is back."""
    return await lifecycle.complete(request_id)
