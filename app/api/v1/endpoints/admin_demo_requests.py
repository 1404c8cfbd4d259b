# app/api/v1/endpoints/admin_demo_requests.py
"""
Admin endpoints for working the demo request queue.

These endpoints allow the demo team to:
- List, search and filter requests, with queue statistics
- Confirm a request for a specific time, or move it to another status
- Apply one action to many requests at once
- Download the calendar invite of a confirmed demo
"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from fastapi.responses import Response

from app.api import deps
from app.constants.demo_request import BulkAction, DemoRequestStatus
from app.core import email
from app.schemas.demo_request import (
    BulkActionResponse,
    DemoBulkActionRequest,
    DemoRequestResponse,
    DemoRequestStats,
    DemoStatusUpdate,
    PaginatedDemoRequests,
    Pagination,
)
from app.schemas.token import TokenPayload
from app.services.demo_scheduling import DemoRequestService
from app.utils.calendar_utils import generate_demo_ics, generate_ics_filename

router = APIRouter(prefix="/admin/demo-requests", tags=["Admin - Demo Requests"])
logger = logging.getLogger(__name__)


@router.get("", response_model=PaginatedDemoRequests)
def list_demo_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(15, ge=1, le=100),
    status: Optional[str] = Query(None, description="Filter by status"),
    demo_type: Optional[str] = Query(None, description="Filter by demo type"),
    source: Optional[str] = Query(None, description="Filter by source"),
    search: Optional[str] = Query(None, description="Match name, email or company"),
    service: DemoRequestService = Depends(deps.get_demo_request_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Newest first, with the queue statistics alongside."""
    items, total = service.list_requests(
        page=page,
        limit=limit,
        status=status,
        demo_type=demo_type,
        source=source,
        search=search,
    )
    return PaginatedDemoRequests(
        data=[DemoRequestResponse.model_validate(item) for item in items],
        pagination=Pagination(
            totalItems=total,
            totalPages=math.ceil(total / limit) if total else 0,
            currentPage=page,
        ),
        stats=DemoRequestStats(**service.stats()),
    )


@router.get("/stats", response_model=DemoRequestStats)
def get_demo_request_stats(
    service: DemoRequestService = Depends(deps.get_demo_request_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return DemoRequestStats(**service.stats())


@router.get("/{demo_request_id}", response_model=DemoRequestResponse)
def get_demo_request(
    demo_request_id: str,
    service: DemoRequestService = Depends(deps.get_demo_request_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return service.get(demo_request_id)


@router.patch("/{demo_request_id}/status", response_model=DemoRequestResponse)
def update_demo_request_status(
    demo_request_id: str,
    payload: DemoStatusUpdate,
    background_tasks: BackgroundTasks,
    service: DemoRequestService = Depends(deps.get_demo_request_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """
    Set a request's status.

    Confirming requires `confirmed_datetime` (read in the request's own
    timezone when it carries no offset) and answers 409 with alternatives if
    another confirmed demo is too close.
    """
    demo = service.update_status(
        demo_request_id,
        payload.status,
        confirmed_datetime=payload.confirmed_datetime,
        admin_notes=payload.admin_notes,
    )
    response = DemoRequestResponse.model_validate(demo)
    logger.info(f"Admin {current_user.sub} set demo request {demo_request_id} to {demo.status}")

    if payload.status == DemoRequestStatus.CONFIRMED:
        background_tasks.add_task(email.send_demo_confirmed, response)
    return response


@router.post("/bulk", response_model=BulkActionResponse)
def bulk_update_demo_requests(
    payload: DemoBulkActionRequest,
    background_tasks: BackgroundTasks,
    service: DemoRequestService = Depends(deps.get_demo_request_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """
    Apply one action to several requests. Each id succeeds or fails on its
    own; failures are listed by id.
    """
    result = service.bulk_transition(
        payload.demo_request_ids,
        payload.action,
        confirmed_datetime=payload.confirmed_datetime,
        admin_notes=payload.admin_notes,
    )

    if payload.action == BulkAction.CONFIRM:
        for demo_request_id in result.updated_ids:
            confirmed = DemoRequestResponse.model_validate(service.get(demo_request_id))
            background_tasks.add_task(email.send_demo_confirmed, confirmed)

    logger.info(
        f"Admin {current_user.sub} ran bulk {payload.action} on "
        f"{len(payload.demo_request_ids)} demo request(s)"
    )
    return BulkActionResponse(
        success=not result.failures,
        message=f"Successfully updated {result.updated_count} demo request(s)",
        updated_count=result.updated_count,
        failures=result.failures,
    )


@router.get("/{demo_request_id}/calendar.ics")
def download_demo_calendar(
    demo_request_id: str,
    service: DemoRequestService = Depends(deps.get_demo_request_service),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Download the ICS invite of a confirmed demo."""
    demo = service.get(demo_request_id)
    if demo.status != DemoRequestStatus.CONFIRMED or demo.confirmed_datetime is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only confirmed demo requests have a calendar invite",
        )

    return Response(
        content=generate_demo_ics(demo),
        media_type="text/calendar",
        headers={
            "Content-Disposition": f'attachment; filename="{generate_ics_filename(demo)}"'
        },
    )
