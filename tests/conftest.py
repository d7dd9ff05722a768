"""Shared test fixtures."""

import asyncio
import json
from dataclasses import dataclass, field

import pytest

from meal_logger.config import Settings
from meal_logger.containers import AppContainer
from meal_logger.domain.estimates import NormalizedEstimate
from meal_logger.services.estimation import EstimationClient, EstimationGateway
from meal_logger.services.meals import MealGateway, MealLogService
from meal_logger.services.sessions import InMemorySessionStore

RICE_AND_CHICKEN = {
    "mealTitle": "Chicken and rice",
    "items": [
        {
            "name": "Rice",
            "quantity": "1 cup",
            "kcal": 200,
            "protein": 4,
            "carbs": 45,
            "fat": 1,
        },
        {
            "name": "Chicken",
            "quantity": "100g",
            "kcal": 165,
            "protein": 31,
            "carbs": 0,
            "fat": 4,
        },
    ],
    "notes": "Grilled chicken breast",
    "confidence": 0.8,
}


@dataclass
class FakeEstimationClient(EstimationClient):
    """Fake estimation client returning a fixed completion."""

    content: str | None = field(default_factory=lambda: json.dumps(RICE_AND_CHICKEN))
    error: Exception | None = None
    delay: float = 0.0
    calls: list[dict[str, object]] = field(default_factory=list)

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, object]],
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        self.calls.append(
            {
                "model": model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.content


@dataclass
class FakeGateway(MealGateway):
    """Fake gateway returning a fixed estimate or raising an error."""

    estimate: NormalizedEstimate | None = None
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)
    release: asyncio.Event | None = None

    async def analyze(
        self,
        *,
        message: str | None = None,
        image_base64: str | None = None,
        meal_label: str | None = None,
    ) -> NormalizedEstimate:
        self.calls.append(
            {
                "message": message,
                "image_base64": image_base64,
                "meal_label": meal_label,
            }
        )
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        if self.estimate is None:
            return NormalizedEstimate(meal_title="Meal")
        return self.estimate


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key="openai-key")


@pytest.fixture
def estimation_client() -> FakeEstimationClient:
    return FakeEstimationClient()


@pytest.fixture
def gateway(estimation_client: FakeEstimationClient) -> EstimationGateway:
    return EstimationGateway(client=estimation_client)


@pytest.fixture
def container(settings: Settings, gateway: EstimationGateway) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        gateway=gateway,
        meal_log_service=MealLogService(gateway=gateway),
        session_store=InMemorySessionStore(),
        close_resources=close_resources,
    )
