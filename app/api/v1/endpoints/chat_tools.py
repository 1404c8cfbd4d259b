# app/api/v1/endpoints/chat_tools.py
"""
Tools exposed to the chat agent service. Internal only: every call must carry
the shared internal API key.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api import deps
from app.core import email
from app.core.clock import Clock
from app.schemas.demo_request import DemoRequestResponse
from app.services.demo_scheduling import TOOL_DEFINITION, ScheduleDemoTool

router = APIRouter(prefix="/chat-tools", tags=["Internal - Chat Tools"])


class ScheduleDemoArguments(BaseModel):
    """Whatever the agent extracted from the conversation. All optional, all loose."""

    name: Optional[Any] = None
    email: Optional[Any] = None
    company: Optional[Any] = None
    phone: Optional[Any] = None
    demo_type: Optional[Any] = None
    preferred_datetime: Optional[Any] = None
    timezone: Optional[Any] = None
    message: Optional[Any] = None
    session_id: Optional[Any] = None


class ToolReply(BaseModel):
    reply: str


@router.get("/schedule-demo", response_model=Dict[str, Any])
def get_schedule_demo_definition(
    api_key: str = Depends(deps.get_internal_api_key),
):
    """The function definition the agent registers the tool with."""
    return TOOL_DEFINITION


@router.post("/schedule-demo", response_model=ToolReply)
def run_schedule_demo(
    arguments: ScheduleDemoArguments,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    clock: Clock = Depends(deps.get_clock),
    api_key: str = Depends(deps.get_internal_api_key),
):
    tool = ScheduleDemoTool(db, clock=clock)
    reply = tool(**arguments.model_dump(exclude_none=True))

    if tool.booked is not None:
        booked = DemoRequestResponse.model_validate(tool.booked)
        background_tasks.add_task(email.send_demo_request_notification, booked)
        background_tasks.add_task(email.send_demo_request_received, booked)
    return ToolReply(reply=reply)
