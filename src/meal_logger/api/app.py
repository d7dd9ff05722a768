"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from meal_logger.api.models import DateSelection, MealSubmission
from meal_logger.app_logging import configure_logging
from meal_logger.containers import AppContainer
from meal_logger.domain.errors import MealLoggerError
from meal_logger.domain.meals import MacroBreakdown, MealEntry, MealItem
from meal_logger.domain.sessions import LoggingSession
from meal_logger.services.meals import DaySummary, parse_day


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(MealLoggerError)
    async def meal_logger_error(
        request: Request, exc: MealLoggerError
    ) -> JSONResponse:
        if exc.status_code >= 500:  # noqa: PLR2004
            logger.error(
                "Request failed",
                extra={"path": request.url.path, "error": type(exc).__name__},
            )
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse({"error": "Invalid JSON payload."}, status_code=400)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/api/analyze")
    async def analyze(request: Request) -> dict[str, object]:
        """Estimate macros for one meal."""
        state_container: AppContainer = request.app.state.container
        body = await request.body()
        estimate = await state_container.gateway.handle(body)
        return estimate.to_payload()

    @app.post("/sessions", status_code=201)
    async def create_session(request: Request) -> dict[str, object]:
        """Start a new logging session."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_store.create()
        return _session_payload(session)

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: UUID, request: Request) -> dict[str, object]:
        """Return session status and chat transcript."""
        state_container: AppContainer = request.app.state.container
        return _session_payload(state_container.session_store.get(session_id))

    @app.put("/sessions/{session_id}/date")
    async def select_date(
        session_id: UUID, selection: DateSelection, request: Request
    ) -> dict[str, object]:
        """Change the date new meals are logged under."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_store.get(session_id)
        state_container.meal_log_service.select_date(session, selection.date)
        return _session_payload(session)

    @app.post("/sessions/{session_id}/meals")
    async def submit_meal(
        session_id: UUID, submission: MealSubmission, request: Request
    ) -> dict[str, object]:
        """Estimate a meal and log it for the selected date."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_store.get(session_id)
        entry = await state_container.meal_log_service.submit_meal(
            session,
            description=submission.message,
            image_data=submission.image_base64,
        )
        summary = state_container.meal_log_service.day_summary(session)
        return {
            "entry": _entry_payload(entry),
            "totals": _macros_payload(summary.totals),
        }

    @app.get("/sessions/{session_id}/days/{day}")
    async def day_log(
        session_id: UUID, day: str, request: Request
    ) -> dict[str, object]:
        """Return entries and totals for a date."""
        state_container: AppContainer = request.app.state.container
        session = state_container.session_store.get(session_id)
        return _day_payload(
            state_container.meal_log_service.day_summary(session, parse_day(day))
        )

    return app


def _session_payload(session: LoggingSession) -> dict[str, object]:
    return {
        "id": str(session.id),
        "selectedDate": session.selected_date,
        "status": session.status.value,
        "error": session.error,
        "chat": [
            {"role": message.role, "text": message.text}
            for message in session.transcript.messages
        ],
    }


def _day_payload(summary: DaySummary) -> dict[str, object]:
    return {
        "date": summary.day,
        "entries": [_entry_payload(entry) for entry in summary.entries],
        "totals": _macros_payload(summary.totals),
    }


def _entry_payload(entry: MealEntry) -> dict[str, object]:
    return {
        "id": str(entry.id),
        "title": entry.title,
        "time": entry.time,
        "macros": _macros_payload(entry.macros),
        "items": [_item_payload(item) for item in entry.items],
        "image": entry.image,
        "notes": entry.notes,
        "confidence": entry.confidence,
    }


def _item_payload(item: MealItem) -> dict[str, object]:
    return {
        "name": item.name,
        "quantity": item.quantity,
        "kcal": item.kcal,
        "protein": item.protein,
        "carbs": item.carbs,
        "fat": item.fat,
    }


def _macros_payload(macros: MacroBreakdown) -> dict[str, float]:
    return {
        "kcal": macros.kcal,
        "protein": macros.protein,
        "carbs": macros.carbs,
        "fat": macros.fat,
    }
