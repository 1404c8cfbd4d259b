# app/services/demo_scheduling/__init__.py
from .availability import AvailabilityEngine, AvailabilityResult
from .chat_tool import TOOL_DEFINITION, ScheduleDemoTool
from .exceptions import (
    DemoRequestNotFoundError,
    DemoSchedulingError,
    DemoValidationError,
    InvalidDatetimeError,
    InvalidTimezoneError,
    InvalidTransitionError,
    SlotConflictError,
    WeekendUnavailableError,
)
from .service import BulkResult, DemoRequestService

__all__ = [
    "AvailabilityEngine",
    "AvailabilityResult",
    "BulkResult",
    "DemoRequestNotFoundError",
    "DemoRequestService",
    "DemoSchedulingError",
    "DemoValidationError",
    "InvalidDatetimeError",
    "InvalidTimezoneError",
    "InvalidTransitionError",
    "ScheduleDemoTool",
    "SlotConflictError",
    "TOOL_DEFINITION",
    "WeekendUnavailableError",
]
