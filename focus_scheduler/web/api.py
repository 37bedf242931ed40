"""
FastAPI wrapper around the focus scheduler.

This exposes a minimal HTTP API so a frontend can:
- schedule a task as focus blocks on the user's primary calendar
- remove those blocks again (task deleted or marked done)
- refresh a Google access token without holding the client secret

Auth:
- Google access token in "Authorization: Bearer <token>"
- optional refresh token in "X-Refresh-Token" (used once on a 401)
"""

from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException
# Enables browser clients to call the API across origins
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from focus_scheduler import service
from focus_scheduler.config import Settings, configure_logging, load_settings
from focus_scheduler.errors import ConfigurationError, GatewayAuthError
from focus_scheduler.google_auth import refresh_access_token

configure_logging(load_settings().log_level)

app = FastAPI(title="Focus Scheduler API", version="0.3.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],          # Dev-only. In production, restrict to your UI domain.
    allow_credentials=False,      # Must be False when allow_origins is "*"
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------------
# Dependencies (overridable in tests)
# ----------------------------

def get_settings() -> Settings:
    return load_settings()


def get_gateway_factory() -> service.GatewayFactory:
    return service.google_gateway


def _bearer_token(authorization: Optional[str]) -> str:
    """
    Extract the Google access token from an Authorization header.
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing Google access token (Authorization: Bearer ...)")
    token = authorization[len("bearer "):].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing Google access token (Authorization: Bearer ...)")
    return token


# ----------------------------
# Request models (API contracts)
# ----------------------------

class TaskPayload(BaseModel):
    """
    The task as the UI knows it.
    """
    id: str = Field(..., description="Task id")
    title: str = Field(..., description="Task title, used in event summaries")
    duration: Optional[int] = Field(None, gt=0, description="Total minutes (default 60)")
    due_date: Optional[str] = Field(
        None, description='ISO date/timestamp or "today" / "tomorrow" / "yesterday"'
    )
    chunk_count: Optional[int] = Field(None, ge=1, description="Manual number of chunks")
    chunk_duration: Optional[int] = Field(None, gt=0, description="Manual minutes per chunk")


class ScheduleRequest(BaseModel):
    task: TaskPayload
    working_hours_start: str = Field("09:00", description="Start of working day (HH:MM)")
    working_hours_end: str = Field("18:00", description="End of working day (HH:MM)")
    timezone: Optional[str] = Field(None, description="IANA timezone string (e.g., America/Toronto)")


class UnscheduleRequest(BaseModel):
    event_ids: list[str] = Field(..., description="Event ids returned by /calendar/schedule")


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


# ----------------------------
# Endpoints
# ----------------------------

@app.get("/health")
def health():
    """
    Health check endpoint.
    """
    return {"ok": True}


@app.post("/calendar/schedule")
def calendar_schedule(
    req: ScheduleRequest,
    authorization: Optional[str] = Header(None),
    x_refresh_token: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    gateway_factory: service.GatewayFactory = Depends(get_gateway_factory),
):
    """
    Write: split the task into chunks and create one event per chunk.

    Returns 200 for full or partial success, 400 when nothing was scheduled.
    """
    access_token = _bearer_token(authorization)

    result = service.schedule_task(
        task_data=req.task.model_dump(),
        access_token=access_token,
        refresh_token=x_refresh_token,
        working_hours_start=req.working_hours_start,
        working_hours_end=req.working_hours_end,
        timezone_name=req.timezone,
        settings=settings,
        gateway_factory=gateway_factory,
    )

    body = result.to_dict()
    if not result.success:
        return JSONResponse(status_code=400, content=body)
    return body


@app.post("/calendar/unschedule")
def calendar_unschedule(
    req: UnscheduleRequest,
    authorization: Optional[str] = Header(None),
    x_refresh_token: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
    gateway_factory: service.GatewayFactory = Depends(get_gateway_factory),
):
    """
    Write: delete previously created focus events (missing ones count as deleted).
    """
    access_token = _bearer_token(authorization)
    try:
        deleted = service.unschedule_task(
            req.event_ids,
            access_token=access_token,
            refresh_token=x_refresh_token,
            settings=settings,
            gateway_factory=gateway_factory,
        )
    except GatewayAuthError as e:
        raise HTTPException(status_code=401, detail=str(e))

    return {"deleted_count": len(deleted), "deleted": deleted}


@app.post("/auth/refresh")
def auth_refresh(req: RefreshRequest, settings: Settings = Depends(get_settings)):
    """
    Exchange a refresh token for a new access token.

    The client secret never leaves the server.
    """
    if not req.refresh_token:
        raise HTTPException(status_code=400, detail="Refresh token is required")
    try:
        return refresh_access_token(req.refresh_token, settings)
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=f"Server configuration error: {e}")
    except GatewayAuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
