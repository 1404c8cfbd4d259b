# app/api/v1/endpoints/demo_requests.py
"""
Public demo booking endpoints: the website form, the chatbot widget and the
availability lookups both of them use.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from app.api import deps
from app.constants.demo_request import DemoRequestSource
from app.core import email
from app.core.limiter import limiter
from app.schemas.demo_request import (
    AvailabilityCheckRequest,
    AvailabilityResponse,
    AvailableSlotsResponse,
    DemoRequestCreated,
    DemoRequestResponse,
)
from app.schemas.token import TokenPayload
from app.services.demo_scheduling import (
    DemoRequestService,
    DemoValidationError,
    SlotConflictError,
)
from app.services.demo_scheduling.exceptions import FieldError
from app.utils.timezones import to_utc_iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/demo-requests", tags=["Demo Requests"])

CREATED_MESSAGE = (
    "Demo request submitted successfully! We will contact you within 24 hours to confirm."
)


def _notify_created(background_tasks: BackgroundTasks, demo: DemoRequestResponse) -> None:
    background_tasks.add_task(email.send_demo_request_notification, demo)
    background_tasks.add_task(email.send_demo_request_received, demo)


@router.post(
    "",
    response_model=DemoRequestCreated,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("5/minute")
def create_demo_request(
    request: Request,  # Required for rate limiter
    payload: dict,
    background_tasks: BackgroundTasks,
    service: DemoRequestService = Depends(deps.get_demo_request_service),
    current_user: Optional[TokenPayload] = Depends(deps.get_current_user_optional),
):
    """
    Book a demo from the website form.

    The body is validated as a whole so every missing or invalid field comes
    back in one 422. A taken slot answers 409 with suggested alternatives.
    """
    demo = service.book(
        payload,
        source=DemoRequestSource.MANUAL,
        user_id=current_user.sub if current_user else None,
    )
    response = DemoRequestResponse.model_validate(demo)
    _notify_created(background_tasks, response)
    return DemoRequestCreated(message=CREATED_MESSAGE, demo_request=response)


@router.post(
    "/chatbot",
    response_model=DemoRequestCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_demo_request_via_chatbot(
    payload: dict,
    background_tasks: BackgroundTasks,
    service: DemoRequestService = Depends(deps.get_demo_request_service),
):
    """Book a demo from the chatbot widget. `session_id` is required."""
    try:
        demo = service.book(
            payload, source=DemoRequestSource.CHATBOT, require_session=True
        )
    except SlotConflictError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={
                "success": False,
                "message": e.message,
                "suggested_times": e.details["suggested_times"],
                "requires_rescheduling": True,
            },
        )

    response = DemoRequestResponse.model_validate(demo)
    _notify_created(background_tasks, response)
    return DemoRequestCreated(message=CREATED_MESSAGE, demo_request=response)


@router.get("/available-slots", response_model=AvailableSlotsResponse)
def get_available_slots(
    date: Optional[str] = Query(None, description="Day to list, YYYY-MM-DD"),
    timezone: Optional[str] = Query(None, description="IANA timezone, e.g. America/New_York"),
    service: DemoRequestService = Depends(deps.get_demo_request_service),
):
    """Hourly slots between 09:00 and 17:00 local time on a weekday."""
    missing = [
        FieldError(field=name, code=f"{name}_required", message=f"The {name} field is required.")
        for name, value in (("date", date), ("timezone", timezone))
        if not value
    ]
    if missing:
        raise DemoValidationError(missing)

    slots = service.engine.get_available_slots(date, timezone)
    return AvailableSlotsResponse(date=date.strip(), timezone=timezone, slots=slots)


@router.post("/check-availability", response_model=AvailabilityResponse)
def check_availability(
    payload: AvailabilityCheckRequest,
    service: DemoRequestService = Depends(deps.get_demo_request_service),
):
    """Ask whether a slot is free without booking it."""
    result = service.engine.check_availability(payload.preferred_datetime, payload.timezone)
    return AvailabilityResponse(
        available=result.available,
        requested=to_utc_iso(result.requested_local),
        timezone=result.timezone,
        suggested_times=result.suggestions,
    )
