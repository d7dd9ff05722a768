"""HTTP client for a remote estimation gateway."""

import logging
from dataclasses import dataclass

import httpx

from meal_logger.domain.errors import (
    BadRequestError,
    GatewayResponseError,
    UpstreamError,
    UpstreamFormatError,
    UpstreamTimeoutError,
)
from meal_logger.domain.estimates import AnalyzeRequest, NormalizedEstimate
from meal_logger.services.meals import MealGateway

logger = logging.getLogger(__name__)

FALLBACK_ERROR_MESSAGE = "AI analysis failed"


@dataclass
class HttpxGatewayClient(MealGateway):
    """HTTPX-backed client for ``POST /api/analyze``."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 30.0

    @classmethod
    def create(cls, base_url: str, timeout: float) -> "HttpxGatewayClient":
        """Create a gateway client with a managed httpx session."""
        return cls(base_url=base_url, http_client=httpx.AsyncClient(), timeout=timeout)

    async def analyze(
        self,
        *,
        message: str | None = None,
        image_base64: str | None = None,
        meal_label: str | None = None,
    ) -> NormalizedEstimate:
        """Send one meal to the gateway and parse its normalized estimate."""
        url = f"{self.base_url.rstrip('/')}/api/analyze"
        payload = AnalyzeRequest(
            message=message, image_base64=image_base64, meal_label=meal_label
        ).model_dump(by_alias=True, exclude_none=True)
        try:
            response = await self.http_client.post(
                url, json=payload, timeout=self.timeout
            )
        except httpx.TimeoutException as exc:
            logger.warning("Gateway request timed out", extra={"url": url})
            raise UpstreamTimeoutError() from exc
        except httpx.HTTPError as exc:
            logger.exception("Gateway request failed", extra={"url": url})
            raise UpstreamError() from exc

        if response.is_error:
            message_text = _error_message(response)
            if response.is_client_error:
                raise BadRequestError(message_text)
            raise GatewayResponseError(message_text, response.status_code)
        try:
            return NormalizedEstimate.model_validate(response.json())
        except ValueError as exc:
            logger.warning(
                "Gateway returned an unexpected payload", extra={"url": url}
            )
            raise UpstreamFormatError() from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return FALLBACK_ERROR_MESSAGE
    error = data.get("error") if isinstance(data, dict) else None
    return error if isinstance(error, str) and error else FALLBACK_ERROR_MESSAGE
