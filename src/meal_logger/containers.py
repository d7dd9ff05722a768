"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from meal_logger.adapters.gateway_client import HttpxGatewayClient
from meal_logger.adapters.openai_estimation_client import OpenAIEstimationClient
from meal_logger.config import Settings, resolve_api_key
from meal_logger.services.estimation import EstimationGateway
from meal_logger.services.meals import MealGateway, MealLogService
from meal_logger.services.sessions import InMemorySessionStore, SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    gateway: EstimationGateway
    meal_log_service: MealLogService
    session_store: SessionStore
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    api_key = resolve_api_key(resolved_settings.openai_api_key)
    openai_client = (
        OpenAIEstimationClient.create(
            api_key, timeout=resolved_settings.estimation_timeout_seconds
        )
        if api_key
        else None
    )
    gateway = EstimationGateway(
        client=openai_client,
        model=resolved_settings.openai_model,
        max_tokens=resolved_settings.openai_max_tokens,
        temperature=resolved_settings.openai_temperature,
        timeout_seconds=resolved_settings.estimation_timeout_seconds,
    )
    gateway_client = (
        HttpxGatewayClient.create(
            resolved_settings.gateway_url,
            timeout=resolved_settings.estimation_timeout_seconds,
        )
        if resolved_settings.gateway_url
        else None
    )
    meal_gateway: MealGateway = gateway_client or gateway
    meal_log_service = MealLogService(gateway=meal_gateway)

    async def close_resources() -> None:
        if openai_client is not None:
            await openai_client.close()
        if gateway_client is not None:
            await gateway_client.close()

    return AppContainer(
        settings=resolved_settings,
        gateway=gateway,
        meal_log_service=meal_log_service,
        session_store=InMemorySessionStore(),
        close_resources=close_resources,
    )
