# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.limiter import limiter
from app.services.demo_scheduling import DemoSchedulingError, DemoValidationError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Demo scheduling service starting up (ENV={settings.ENV})")
    yield
    logger.info("Demo scheduling service shutting down")


app = FastAPI(
    title="Demo Scheduling Service",
    version="1.0.0",
    description="""
        **Demo Scheduling Service**

        Books product demos and keeps the demo calendar free of clashes.

        ## Features

        * **Booking**: Website form and chatbot widget endpoints
        * **Availability**: Conflict checks with alternative time suggestions
        * **Admin queue**: Listing, statistics, confirmation and bulk actions
        * **Chat tool**: `schedule_demo` for the conversational agent
        * **Calendar invites**: ICS files for confirmed demos

        ## Authentication

        Admin endpoints require JWT authentication via the `Authorization: Bearer <token>` header.
        Chat tool endpoints require the `X-Internal-Api-Key` header.
        """,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DemoSchedulingError)
async def demo_scheduling_error_handler(request: Request, exc: DemoSchedulingError):
    content = {"success": False, "message": exc.message, "error": exc.category}
    if isinstance(exc, DemoValidationError):
        content.update(errors=exc.errors, codes=exc.codes)
    else:
        content.update(exc.details)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(
        f"Unhandled error on {request.method} {request.url.path}",
        extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": (
                "Something went wrong on our side. Please try again, or email "
                f"{settings.SUPPORT_EMAIL} and we'll help you book your demo."
            ),
        },
    )


app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def read_root():
    return {"status": "Demo Scheduling Service is running"}
