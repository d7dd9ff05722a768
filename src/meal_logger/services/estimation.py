"""Estimation gateway: prompts the model and normalizes its nutrition JSON."""

import asyncio
import json
import logging
import math
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError as PydanticValidationError

from meal_logger.domain.errors import (
    BadRequestError,
    ConfigurationError,
    UpstreamError,
    UpstreamFormatError,
    UpstreamTimeoutError,
)
from meal_logger.domain.estimates import (
    AnalyzeRequest,
    EstimateItem,
    EstimateTotal,
    NormalizedEstimate,
)
from meal_logger.domain.meals import sum_macros

logger = logging.getLogger(__name__)

MACRO_FIELDS = ("kcal", "protein", "carbs", "fat")
UNKNOWN_ITEM_NAME = "Unknown item"

SYSTEM_PROMPT = """\
You are a nutrition analyst. Given an image of food and/or a short description, \
return a concise JSON summary with estimated macros. Use common sense portion \
sizing. If unsure, note low confidence but still estimate. Prefer \
imperial/metric neutral units (cup, g, oz, slice, piece).

Response JSON schema:
{
  "mealTitle": "string",
  "items": [
    {
      "name": "string",
      "quantity": "string",
      "kcal": number,
      "protein": number,
      "carbs": number,
      "fat": number
    }
  ],
  "notes": "short string",
  "confidence": number // 0-1
}

Always return valid JSON, nothing else.
"""


class EstimationClient(Protocol):
    """Interface for the external multimodal estimation model."""

    async def complete(
        self,
        *,
        model: str,
        messages: list[dict[str, object]],
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        """Return the raw JSON-object completion text, if any."""


@dataclass
class EstimationGateway:
    """Stateless handler that turns a meal description into a normalized estimate.

    A gateway built without a client has no credential configured and rejects
    every request with a ``ConfigurationError``.
    """

    client: EstimationClient | None
    model: str = "gpt-4o-mini"
    max_tokens: int = 500
    temperature: float = 0.2
    timeout_seconds: float = 30.0

    async def handle(self, body: bytes | str) -> NormalizedEstimate:
        """Decode a raw request body and analyze it."""
        self._require_client()
        try:
            request = AnalyzeRequest.model_validate_json(body)
        except PydanticValidationError as exc:
            raise BadRequestError("Invalid JSON payload.") from exc
        return await self.analyze(
            message=request.message,
            image_base64=request.image_base64,
            meal_label=request.meal_label,
        )

    async def analyze(
        self,
        *,
        message: str | None = None,
        image_base64: str | None = None,
        meal_label: str | None = None,
    ) -> NormalizedEstimate:
        """Estimate macros for one meal."""
        self._require_client()
        if not _present(message) and not _present(image_base64):
            raise BadRequestError("Provide an image or a description to analyze.")

        messages = build_messages(message, image_base64, meal_label)
        raw = await self._complete(messages)
        parsed = _parse_completion(raw)
        try:
            return normalize_estimate(parsed, meal_label, raw)
        except UpstreamFormatError:
            raise
        except Exception as exc:
            logger.exception("Failed to normalize estimation output")
            raise UpstreamError() from exc

    def _require_client(self) -> EstimationClient:
        if self.client is None:
            raise ConfigurationError("OPENAI_API_KEY is not configured.")
        return self.client

    async def _complete(self, messages: list[dict[str, object]]) -> str | None:
        client = self._require_client()
        try:
            return await asyncio.wait_for(
                client.complete(
                    model=self.model,
                    messages=messages,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                ),
                timeout=self.timeout_seconds,
            )
        except (TimeoutError, UpstreamTimeoutError) as exc:
            logger.warning(
                "Estimation service timed out",
                extra={"model": self.model, "timeout_seconds": self.timeout_seconds},
            )
            raise UpstreamTimeoutError() from exc
        except Exception as exc:
            logger.exception(
                "Estimation service request failed", extra={"model": self.model}
            )
            raise UpstreamError() from exc


def build_messages(
    message: str | None, image_base64: str | None, meal_label: str | None
) -> list[dict[str, object]]:
    """Build the system and user messages for one estimation call."""
    description = message.strip() if _present(message) else "None"
    content: list[dict[str, object]] = [
        {
            "type": "text",
            "text": f"Meal label: {meal_label or 'Meal'}\n"
            f"User description: {description}",
        }
    ]
    if _present(image_base64):
        content.append({"type": "image_url", "image_url": {"url": image_base64}})
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": content},
    ]


def normalize_estimate(
    parsed: dict[str, object], meal_label: str | None, raw: str | None = None
) -> NormalizedEstimate:
    """Coerce model output into a normalized estimate with a recomputed total.

    Any ``total`` reported by the model is ignored. Item values that are each
    finite but overflow when summed are a format error.
    """
    raw_items = parsed.get("items")
    items = [
        _normalize_item(item)
        for item in (raw_items if isinstance(raw_items, list) else [])
        if isinstance(item, dict)
    ]
    total = sum_macros(item.to_domain() for item in items)
    if not all(math.isfinite(getattr(total, field)) for field in MACRO_FIELDS):
        logger.warning("Estimation totals overflowed", extra={"items": len(items)})
        raise UpstreamFormatError()
    title = parsed.get("mealTitle")
    notes = parsed.get("notes")
    return NormalizedEstimate(
        meal_title=title.strip() if _present(title) else (meal_label or "Meal"),
        items=items,
        notes=notes if isinstance(notes, str) else None,
        confidence=_normalize_confidence(parsed.get("confidence")),
        total=EstimateTotal(
            kcal=total.kcal, protein=total.protein, carbs=total.carbs, fat=total.fat
        ),
        raw=raw,
    )


def coerce_macro(value: object) -> float:
    """Return a finite, non-negative number, or 0.0 for anything else."""
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        return 0.0
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (OverflowError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _normalize_item(item: dict[str, object]) -> EstimateItem:
    name = item.get("name")
    quantity = item.get("quantity")
    return EstimateItem(
        name=name.strip() if _present(name) else UNKNOWN_ITEM_NAME,
        quantity=str(quantity).strip() if quantity is not None else "",
        **{field: coerce_macro(item.get(field)) for field in MACRO_FIELDS},
    )


def _normalize_confidence(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    if math.isnan(number):
        return None
    return min(max(number, 0.0), 1.0)


def _parse_completion(raw: str | None) -> dict[str, object]:
    if not raw:
        logger.warning("Estimation service returned no content")
        raise UpstreamFormatError()
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning(
            "Estimation service returned invalid JSON",
            extra={"raw_length": len(raw)},
        )
        raise UpstreamFormatError() from exc
    if not isinstance(parsed, dict):
        logger.warning(
            "Estimation service returned a non-object JSON value",
            extra={"json_type": type(parsed).__name__},
        )
        raise UpstreamFormatError()
    return parsed


def _present(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())
