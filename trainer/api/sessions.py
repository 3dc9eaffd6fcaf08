"""Training session API endpoints."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from shared.utils.exceptions import to_http_exception
from trainer.exceptions import TrainerError
from trainer.models.agent_logs import AgentLogEntry
from trainer.models.feedback import FeedbackReport
from trainer.models.messages import SessionView
from trainer.models.scenario import ScenarioRequest
from trainer.services.session_registry import SessionRegistry

logger = logging.getLogger("trainer.api")

router = APIRouter(prefix="/training", tags=["training"])


class CreateSessionRequest(BaseModel):
    user_id: str = Field(default="anonymous", min_length=1, max_length=100)


class CreateSessionResponse(BaseModel):
    session_id: str
    status: str


class TurnRequest(BaseModel):
    message: str = Field(min_length=1, max_length=4000, description="Trainee message")


class TranscriptResponse(BaseModel):
    session_id: str
    transcript: str


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def _http_error(error: TrainerError) -> HTTPException:
    logger.info(f"Request rejected: {type(error).__name__}: {error.message}")
    return to_http_exception(error)


@router.post("/sessions", response_model=CreateSessionResponse)
def create_session(request: CreateSessionRequest, registry: SessionRegistry = Depends(get_registry)):
    """Create a session waiting for its scenario and persona."""
    session_id = registry.create_session(request.user_id)
    return CreateSessionResponse(session_id=session_id, status="creating")


@router.post("/sessions/{session_id}/start", response_model=SessionView)
async def start_session(
    session_id: str,
    request: ScenarioRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    """Produce scenario, persona and the guest's opening message."""
    try:
        return await registry.start_session(session_id, request)
    except TrainerError as e:
        raise _http_error(e)


@router.post("/sessions/{session_id}/turns", response_model=SessionView)
async def submit_turn(
    session_id: str,
    request: TurnRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    """Submit a trainee message and get the updated session view."""
    try:
        return await registry.continue_session(session_id, request.message)
    except TrainerError as e:
        raise _http_error(e)


@router.get("/sessions/{session_id}", response_model=SessionView)
def get_session_status(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    try:
        return registry.get_session_status(session_id)
    except TrainerError as e:
        raise _http_error(e)


@router.post("/sessions/{session_id}/complete", response_model=FeedbackReport)
async def complete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """End a session now and return its feedback."""
    try:
        return await registry.complete_session(session_id)
    except TrainerError as e:
        raise _http_error(e)


@router.post("/sessions/{session_id}/pause", response_model=SessionView)
async def pause_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    try:
        return await registry.pause_session(session_id)
    except TrainerError as e:
        raise _http_error(e)


@router.post("/sessions/{session_id}/resume", response_model=SessionView)
async def resume_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    try:
        return await registry.resume_session(session_id)
    except TrainerError as e:
        raise _http_error(e)


@router.get("/sessions/{session_id}/transcript", response_model=TranscriptResponse)
def get_transcript(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    try:
        return TranscriptResponse(session_id=session_id, transcript=registry.export_transcript(session_id))
    except TrainerError as e:
        raise _http_error(e)


@router.get("/sessions/{session_id}/feedback", response_model=FeedbackReport)
def get_feedback(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    try:
        return registry.get_feedback(session_id)
    except TrainerError as e:
        raise _http_error(e)


@router.get("/sessions/{session_id}/agent-logs", response_model=List[AgentLogEntry])
def get_agent_logs(
    session_id: str,
    turn_id: Optional[str] = Query(default=None),
    agent_name: Optional[str] = Query(default=None),
    registry: SessionRegistry = Depends(get_registry),
):
    """Per-turn agent events, including which steps used a fallback."""
    try:
        return registry.get_agent_logs(session_id, turn_id=turn_id, agent_name=agent_name)
    except TrainerError as e:
        raise _http_error(e)


@router.get("/users/{user_id}/completed", response_model=List[SessionView])
def get_completed_sessions(user_id: str, registry: SessionRegistry = Depends(get_registry)):
    return registry.get_completed_sessions(user_id)


@router.get("/stats")
def get_stats(registry: SessionRegistry = Depends(get_registry)):
    return {
        "sessions": registry.get_stats(),
        "agent_logs": registry.orchestrator.agent_logs.get_stats(),
    }
