import logging
import os
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from logging.handlers import RotatingFileHandler
from typing import Dict, Optional

import uvicorn
from fastapi import (
    Cookie,
    Depends,
    FastAPI,
    Form,
    Response,
)
from fastapi.responses import JSONResponse, StreamingResponse

from .config import settings
from .content import ParagraphLibrary
from .controller import SessionController
from .models import SessionSnapshot

# --- Logging Setup ---
package_logger = logging.getLogger(settings.PROJECT_NAME)
package_logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)

if settings.LOG_TO_FILE:
    if not os.path.exists(settings.LOG_DIR):
        os.makedirs(settings.LOG_DIR)
    log_path = os.path.join(settings.LOG_DIR, settings.LOG_FILE)
    file_handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    )
    package_logger.addHandler(file_handler)


# --- Storage ---
@dataclass
class ActiveSession:
    controller: SessionController
    created_at: datetime = field(default_factory=datetime.now)


content_library = ParagraphLibrary(settings.CONTENT_DIR)
sessions: Dict[str, ActiveSession] = {}


def end_session(session_id: str) -> None:
    active = sessions.pop(session_id, None)
    if active:
        active.controller.close()


# --- Lifecycle ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    content_library.load_all()
    yield
    for session_id in list(sessions):
        end_session(session_id)


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan,
)


# --- Dependencies ---
def get_session_id(
    session_id: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
) -> Optional[str]:
    return session_id


def get_controller(
    session_id: Optional[str] = Depends(get_session_id),
) -> Optional[SessionController]:
    if not session_id:
        return None

    active = sessions.get(session_id)
    if not active:
        return None

    if datetime.now() - active.created_at > timedelta(
        minutes=settings.SESSION_TIMEOUT_MINUTES
    ):
        end_session(session_id)
        logger.info(f"Expired session: {session_id}")
        return None
    return active.controller


def invalid_session() -> JSONResponse:
    return JSONResponse({"error": "Session invalid"}, status_code=401)


# --- Routes ---
@app.post("/api/session", response_model=SessionSnapshot)
async def create_session(response: Response):
    new_id = str(uuid.uuid4())
    controller = SessionController(content=content_library)
    sessions[new_id] = ActiveSession(controller=controller)
    logger.info(f"New session: {new_id}")

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=new_id,
        httponly=True,
        samesite="Lax",
    )
    return controller.latest


@app.delete("/api/session")
async def delete_session(
    response: Response,
    session_id: Optional[str] = Depends(get_session_id),
):
    if session_id:
        end_session(session_id)
        logger.info(f"Ended session: {session_id}")
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"status": "success"}


@app.get("/api/state", response_model=SessionSnapshot)
async def get_state(controller: Optional[SessionController] = Depends(get_controller)):
    if not controller:
        return invalid_session()
    return controller.latest


@app.get("/api/stream")
async def stream_state(controller: Optional[SessionController] = Depends(get_controller)):
    """Server-sent events, one per published snapshot."""
    if not controller:
        return invalid_session()

    async def events():
        async for snapshot in controller.stream.updates():
            yield f"data: {snapshot.model_dump_json()}\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")


@app.post("/api/text", response_model=SessionSnapshot)
async def load_text(
    text: str = Form(...),
    controller: Optional[SessionController] = Depends(get_controller),
):
    if not controller:
        return invalid_session()
    return controller.load_custom_text(text)


@app.post("/api/generate", response_model=SessionSnapshot)
async def generate_text(
    topic: str = Form(...),
    controller: Optional[SessionController] = Depends(get_controller),
):
    if not controller:
        return invalid_session()
    return await controller.request_generated_text(topic)


@app.post("/api/start", response_model=SessionSnapshot)
async def start_reading(controller: Optional[SessionController] = Depends(get_controller)):
    if not controller:
        return invalid_session()
    return controller.start()


@app.post("/api/pause", response_model=SessionSnapshot)
async def pause_reading(controller: Optional[SessionController] = Depends(get_controller)):
    if not controller:
        return invalid_session()
    return controller.pause()


@app.post("/api/reset", response_model=SessionSnapshot)
async def reset_reading(controller: Optional[SessionController] = Depends(get_controller)):
    if not controller:
        return invalid_session()
    return controller.reset()


@app.post("/api/speed", response_model=SessionSnapshot)
async def change_speed(
    speed: int = Form(...),
    controller: Optional[SessionController] = Depends(get_controller),
):
    if not controller:
        return invalid_session()
    return controller.set_speed(speed)


@app.post("/api/answer", response_model=SessionSnapshot)
async def submit_answer(
    question_index: int = Form(...),
    selected_option_index: int = Form(...),
    controller: Optional[SessionController] = Depends(get_controller),
):
    if not controller:
        return invalid_session()
    return controller.select_answer(question_index, selected_option_index)


@app.post("/api/quiz/close", response_model=SessionSnapshot)
async def close_quiz(controller: Optional[SessionController] = Depends(get_controller)):
    if not controller:
        return invalid_session()
    return controller.close_quiz()


@app.post("/api/focus", response_model=SessionSnapshot)
async def toggle_focus(controller: Optional[SessionController] = Depends(get_controller)):
    if not controller:
        return invalid_session()
    return controller.toggle_focus_mode()


if __name__ == "__main__":
    uvicorn.run("rapidread.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
