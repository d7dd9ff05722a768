"""Meal estimation client: submits meals and folds estimates into the day log."""

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol

from meal_logger.domain.errors import (
    MealLoggerError,
    SubmissionInProgressError,
    UpstreamError,
    ValidationError,
)
from meal_logger.domain.estimates import NormalizedEstimate
from meal_logger.domain.meals import MacroBreakdown, MealEntry, sum_macros
from meal_logger.domain.sessions import LoggingSession, SubmissionStatus
from meal_logger.services.images import normalize_image

logger = logging.getLogger(__name__)

MISSING_INPUT_MESSAGE = "Add a photo or describe your meal first."
INVALID_DATE_MESSAGE = "Pick a valid date (YYYY-MM-DD)."
UNEXPECTED_ERROR_MESSAGE = "Something went wrong while analyzing your meal."
CANCELLED_MESSAGE = "Meal analysis cancelled."
PHOTO_ONLY_TEXT = "(photo only)"

BREAKFAST_BEFORE_HOUR = 11
LUNCH_BEFORE_HOUR = 15
SNACK_BEFORE_HOUR = 18


class MealGateway(Protocol):
    """Interface for anything that can turn a meal into a normalized estimate."""

    async def analyze(
        self,
        *,
        message: str | None = None,
        image_base64: str | None = None,
        meal_label: str | None = None,
    ) -> NormalizedEstimate:
        """Return a normalized estimate for one meal."""


@dataclass(frozen=True)
class DaySummary:
    """Entries and folded totals for a single date."""

    day: str
    entries: list[MealEntry]
    totals: MacroBreakdown


@dataclass
class MealLogService:
    """Submits meals to a gateway and records results in a session."""

    gateway: MealGateway

    async def submit_meal(
        self,
        session: LoggingSession,
        description: str | None = None,
        image_data: str | None = None,
        reference_time: datetime | None = None,
    ) -> MealEntry:
        """Estimate one meal and append it under the session's selected date.

        ``image_data`` may be a data URL or bare base64. Failures, including
        invalid input, leave the day log untouched; the user-facing message is
        added to the transcript and stored on ``session.error`` before
        re-raising.
        """
        if session.status is SubmissionStatus.PENDING:
            raise SubmissionInProgressError()

        has_text = _present(description)
        has_image = _present(image_data)
        if not has_text and not has_image:
            error = ValidationError(MISSING_INPUT_MESSAGE)
            _record_failure(session, error.message)
            raise error

        try:
            image = normalize_image(image_data) if image_data and has_image else None
        except ValidationError as exc:
            _record_failure(session, exc.message)
            raise

        when = reference_time or datetime.now().astimezone()
        label = guess_meal_label(when)
        day = session.selected_date
        session.status = SubmissionStatus.PENDING
        session.error = None
        session.transcript.append(
            "user", description.strip() if has_text else PHOTO_ONLY_TEXT
        )

        try:
            estimate = await self.gateway.analyze(
                message=description.strip() if has_text else None,
                image_base64=image,
                meal_label=label,
            )
            entry = build_entry(estimate, label, when, image)
        except asyncio.CancelledError:
            session.transcript.append("assistant", CANCELLED_MESSAGE)
            session.status = SubmissionStatus.IDLE
            raise
        except MealLoggerError as exc:
            logger.warning(
                "Meal submission failed",
                extra={"session_id": str(session.id), "error": type(exc).__name__},
            )
            _record_failure(session, exc.message)
            raise
        except Exception as exc:
            logger.exception(
                "Unexpected meal submission failure",
                extra={"session_id": str(session.id)},
            )
            _record_failure(session, UNEXPECTED_ERROR_MESSAGE)
            raise UpstreamError(UNEXPECTED_ERROR_MESSAGE) from exc

        session.day_log.append(day, entry)
        session.transcript.append("assistant", render_summary(entry))
        session.status = SubmissionStatus.IDLE
        logger.info(
            "Meal logged",
            extra={
                "session_id": str(session.id),
                "day": day,
                "items": len(entry.items),
            },
        )
        return entry

    def select_date(self, session: LoggingSession, day: str) -> str:
        """Switch the date new meals are logged under."""
        session.selected_date = parse_day(day)
        return session.selected_date

    def day_summary(
        self, session: LoggingSession, day: str | None = None
    ) -> DaySummary:
        """Return a day's entries with totals recomputed from them."""
        target = day or session.selected_date
        return DaySummary(
            day=target,
            entries=session.day_log.entries_for(target),
            totals=session.day_log.totals_for(target),
        )


def parse_day(day: str) -> str:
    """Validate an ISO calendar date and return it in canonical form."""
    try:
        return date.fromisoformat(day.strip()).isoformat()
    except ValueError as exc:
        raise ValidationError(INVALID_DATE_MESSAGE) from exc


def guess_meal_label(reference_time: datetime) -> str:
    """Map the hour of day to a coarse meal label."""
    hour = reference_time.hour
    if hour < BREAKFAST_BEFORE_HOUR:
        return "Breakfast"
    if hour < LUNCH_BEFORE_HOUR:
        return "Lunch"
    if hour < SNACK_BEFORE_HOUR:
        return "Snack"
    return "Dinner"


def build_entry(
    estimate: NormalizedEstimate,
    label: str,
    reference_time: datetime,
    image: str | None = None,
) -> MealEntry:
    """Create a log entry from a gateway estimate."""
    items = tuple(item.to_domain() for item in estimate.items)
    macros = (
        estimate.total.to_domain() if estimate.total is not None else sum_macros(items)
    )
    return MealEntry(
        title=estimate.meal_title.strip() or label,
        time=reference_time.strftime("%H:%M"),
        macros=macros,
        items=items,
        image=image,
        notes=estimate.notes,
        confidence=estimate.confidence,
    )


def render_summary(entry: MealEntry) -> str:
    """Render the assistant chat line for a logged meal."""
    if entry.items:
        foods = ", ".join(f"{item.name} ({item.quantity})" for item in entry.items)
    else:
        foods = entry.title
    macros = entry.macros
    macro_line = (
        f"{_round_half_up(macros.kcal)} kcal — "
        f"P{_round_half_up(macros.protein)}g "
        f"C{_round_half_up(macros.carbs)}g "
        f"F{_round_half_up(macros.fat)}g"
    )
    if entry.confidence is None:
        confidence = "Confidence: n/a"
    else:
        confidence = f"Confidence: {_round_half_up(entry.confidence * 100)}%"
    return f"{entry.title}: {foods}\n{macro_line}\n{confidence}"


def _record_failure(session: LoggingSession, message: str) -> None:
    session.transcript.append("assistant", message)
    session.error = message
    session.status = SubmissionStatus.FAILED


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _present(value: str | None) -> bool:
    return bool(value and value.strip())
