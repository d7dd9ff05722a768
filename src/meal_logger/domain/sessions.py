"""Session-scoped state for meal logging: day log, chat and submission status."""

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Literal
from uuid import UUID, uuid4

from meal_logger.domain.meals import MacroBreakdown, MealEntry, sum_macros

GREETING = (
    "Upload a photo or tell me what you ate. I will estimate calories and macros "
    "with OpenAI and add it to your day."
)

ChatRole = Literal["assistant", "user"]


class SubmissionStatus(StrEnum):
    """Lifecycle of the in-flight meal submission."""

    IDLE = "idle"
    PENDING = "pending"
    FAILED = "failed"


@dataclass(frozen=True)
class ChatMessage:
    """Single line of the chat transcript."""

    role: ChatRole
    text: str


@dataclass
class ChatTranscript:
    """Append-only display transcript."""

    messages: list[ChatMessage] = field(
        default_factory=lambda: [ChatMessage(role="assistant", text=GREETING)]
    )

    def append(self, role: ChatRole, text: str) -> ChatMessage:
        message = ChatMessage(role=role, text=text)
        self.messages.append(message)
        return message

    def __len__(self) -> int:
        return len(self.messages)


@dataclass
class DayLog:
    """Meals grouped by ISO calendar date, append-only per date.

    Totals are folded from the entries on every read so they can never drift
    from the logged meals.
    """

    _entries: dict[str, list[MealEntry]] = field(default_factory=dict)

    def append(self, day: str, entry: MealEntry) -> None:
        self._entries.setdefault(day, []).append(entry)

    def entries_for(self, day: str) -> list[MealEntry]:
        return list(self._entries.get(day, []))

    def totals_for(self, day: str) -> MacroBreakdown:
        return sum_macros(entry.macros for entry in self._entries.get(day, []))

    def days(self) -> list[str]:
        return sorted(self._entries)


@dataclass
class LoggingSession:
    """Everything one user session owns."""

    id: UUID = field(default_factory=uuid4)
    day_log: DayLog = field(default_factory=DayLog)
    transcript: ChatTranscript = field(default_factory=ChatTranscript)
    selected_date: str = field(default_factory=lambda: date.today().isoformat())
    status: SubmissionStatus = SubmissionStatus.IDLE
    error: str | None = None
