"""FastAPI backend proxying study-text requests to the completion service.

The extension (or any HTTP client) posts selected text; the backend holds the
API key, calls the model and returns JSON. Error bodies are always
``{"error": "..."}``.
"""

from __future__ import annotations

import logging
import threading
from importlib import metadata
from typing import Callable, Optional

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..artifacts import generate_flashcards, generate_summary
from ..core import config as config_mod
from ..core.errors import LoggingError
from ..core.gateway import CompletionGateway
from ..core.runtime import build_gateway
from ..history.store import SessionLogger, record_session
from ..quiz.extraction import clamp_count, generate_quiz
from .schemas import (
    HealthResponse,
    HistoryItem,
    HistoryResponse,
    LogSessionRequest,
    OkResponse,
    QuizQuestion,
    QuizRequest,
    QuizResponse,
    ResultResponse,
    TextRequest,
)

_LOGGER = logging.getLogger(__name__)

GatewayFactory = Callable[[config_mod.StudySnapConfig], CompletionGateway]

NO_TEXT_MESSAGE = "No text provided"


def _package_version() -> str:
    try:
        return metadata.version("study-snap")
    except metadata.PackageNotFoundError:
        return "unknown"


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


class _GatewayHolder:
    """Build the gateway on first use so the server starts without a key."""

    def __init__(
        self,
        cfg: config_mod.StudySnapConfig,
        gateway: Optional[CompletionGateway],
        factory: Optional[GatewayFactory],
    ) -> None:
        self._cfg = cfg
        self._gateway = gateway
        self._factory = factory or build_gateway
        self._lock = threading.Lock()

    def get(self) -> CompletionGateway:
        with self._lock:
            if self._gateway is None:
                self._gateway = self._factory(self._cfg)
            return self._gateway


def create_app(
    cfg: Optional[config_mod.StudySnapConfig] = None,
    *,
    gateway: Optional[CompletionGateway] = None,
    gateway_factory: Optional[GatewayFactory] = None,
    history: Optional[SessionLogger] = None,
) -> FastAPI:
    cfg = cfg or config_mod.default_config()
    app = FastAPI(title="Study Snap", version=_package_version())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cfg.server.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = cfg
    app.state.gateways = _GatewayHolder(cfg, gateway, gateway_factory)
    app.state.history = history

    def _gateway(request: Request) -> CompletionGateway:
        return request.app.state.gateways.get()

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(version=_package_version())

    @app.post("/quiz", response_model=QuizResponse)
    def quiz(payload: QuizRequest, request: Request):
        if not payload.text.strip():
            return _error(NO_TEXT_MESSAGE, 400)
        count = clamp_count(payload.count, default=cfg.quiz.default_count)
        try:
            questions = generate_quiz(
                payload.text, count, gateway=_gateway(request)
            )
        except RuntimeError as exc:  # upstream, extraction or missing key
            _LOGGER.error(
                "Quiz request failed",
                extra={"error_type": type(exc).__name__, "count": count},
            )
            return _error(str(exc), 500)
        return QuizResponse(
            quiz=[QuizQuestion.from_question(q) for q in questions]
        )

    @app.post("/summary", response_model=ResultResponse)
    def summary(payload: TextRequest, request: Request):
        if not payload.text.strip():
            return _error(NO_TEXT_MESSAGE, 400)
        try:
            result = generate_summary(payload.text, gateway=_gateway(request))
        except RuntimeError as exc:
            _LOGGER.error(
                "Summary request failed",
                extra={"error_type": type(exc).__name__},
            )
            return _error(str(exc), 500)
        return ResultResponse(result=result)

    @app.post("/flashcards", response_model=ResultResponse)
    def flashcards(payload: TextRequest, request: Request):
        if not payload.text.strip():
            return _error(NO_TEXT_MESSAGE, 400)
        try:
            result = generate_flashcards(
                payload.text, gateway=_gateway(request)
            )
        except RuntimeError as exc:
            _LOGGER.error(
                "Flashcards request failed",
                extra={"error_type": type(exc).__name__},
            )
            return _error(str(exc), 500)
        return ResultResponse(result=result)

    @app.post("/log-session", response_model=OkResponse)
    def log_session(
        payload: LogSessionRequest,
        background_tasks: BackgroundTasks,
        request: Request,
    ) -> OkResponse:
        background_tasks.add_task(
            record_session, request.app.state.history, payload.to_entry()
        )
        return OkResponse()

    @app.get("/history", response_model=HistoryResponse)
    def history_view(request: Request):
        store: Optional[SessionLogger] = request.app.state.history
        if store is None:
            return HistoryResponse(history=[])
        try:
            entries = store.recent(cfg.history.recent_limit)
        except LoggingError as exc:
            _LOGGER.error("History query failed", extra={"error": str(exc)})
            return _error("Failed to load history", 500)
        return HistoryResponse(
            history=[HistoryItem(**entry.to_dict()) for entry in entries]
        )

    return app
