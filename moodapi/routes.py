"""
REST endpoints for the live detection session.
"""
from typing import Optional
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
import logging

from moodcore.config import Settings
from moodcore.context import SessionContext
from moodcore.escalation import QueuedNavigator
from moodcore.session import DetectionSession


router = APIRouter()
settings = Settings()
context = SessionContext()
navigator = QueuedNavigator()
live_session: dict = {"session": None}
logger = logging.getLogger(__name__)


class AcquireRequest(BaseModel):
    user: Optional[str] = None


def build_session() -> DetectionSession:
    return DetectionSession(settings, context, navigator)


def _require_session() -> DetectionSession:
    session = live_session["session"]
    if session is None or session.released:
        raise HTTPException(status_code=409, detail="No active detection session. POST /session/acquire first.")
    return session


async def shutdown_session() -> None:
    session, live_session["session"] = live_session["session"], None
    if session is not None:
        logger.debug("[api] releasing session on shutdown")
        await session.release()


@router.post("/session/acquire")
async def session_acquire(req: Optional[AcquireRequest] = None):
    """
    Request camera access and load the emotion model.

    Args:
        req: Optional body naming the signed-in user.

    Returns:
        dict: Session status after acquisition.
    """
    if req is not None and req.user:
        context.user = req.user
    session = live_session["session"]
    if session is None or session.released:
        session = build_session()
        live_session["session"] = session
    try:
        await session.acquire()
    except Exception as e:
        logger.exception("[api] session acquire failed")
        raise HTTPException(status_code=500, detail=str(e))
    return session.status(navigator.drain()).model_dump(mode="json")


@router.post("/session/retry-model")
async def session_retry_model():
    session = _require_session()
    await session.retry_model()
    return session.status(navigator.drain()).model_dump(mode="json")


@router.post("/detection/start")
async def detection_start():
    session = _require_session()
    if session.is_detecting:
        return {"status": "already_running"}
    started = await session.start_detection()
    logger.debug(f"[api] /detection/start started={started} state={session.state.value}")
    return {"status": "started" if started else "not_ready", "detection_error": session.detection_error}


@router.post("/detection/stop")
async def detection_stop():
    session = _require_session()
    if not session.is_detecting:
        return {"status": "not_running"}
    await session.stop_detection()
    return {"status": "stopped"}


@router.get("/session/status")
async def session_status():
    """
    Current detection state, latest emotion, recent history and any navigation
    requested since the last poll.
    """
    session = _require_session()
    return session.status(navigator.drain()).model_dump(mode="json")


@router.post("/session/release")
async def session_release():
    session = live_session["session"]
    if session is None or session.released:
        return {"status": "not_running"}
    await shutdown_session()
    return {"status": "released"}
