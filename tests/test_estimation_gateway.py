"""Tests for the estimation gateway."""

import asyncio
import json

import pytest

from meal_logger.domain.errors import (
    BadRequestError,
    ConfigurationError,
    UpstreamError,
    UpstreamFormatError,
    UpstreamTimeoutError,
)
from meal_logger.services.estimation import (
    SYSTEM_PROMPT,
    EstimationGateway,
    build_messages,
    coerce_macro,
    normalize_estimate,
)
from tests.conftest import FakeEstimationClient


def test_analyze_sums_items_into_total(gateway: EstimationGateway) -> None:
    result = asyncio.run(gateway.analyze(message="rice and chicken"))

    assert result.meal_title == "Chicken and rice"
    assert [item.name for item in result.items] == ["Rice", "Chicken"]
    assert result.total is not None
    assert result.total.kcal == 365
    assert result.total.protein == 35
    assert result.total.carbs == 45
    assert result.total.fat == 5
    assert result.notes == "Grilled chicken breast"
    assert result.confidence == 0.8


def test_analyze_discards_upstream_total() -> None:
    payload = {
        "mealTitle": "Toast",
        "items": [{"name": "Toast", "quantity": "1 slice", "kcal": 80}],
        "total": {"kcal": 9999, "protein": 99, "carbs": 99, "fat": 99},
    }
    gateway = EstimationGateway(
        client=FakeEstimationClient(content=json.dumps(payload))
    )

    result = asyncio.run(gateway.analyze(message="toast"))

    assert result.total is not None
    assert result.total.kcal == 80
    assert result.total.protein == 0


def test_analyze_coerces_bad_macro_fields_to_zero() -> None:
    payload = {
        "items": [
            {"name": "Soup", "quantity": "1 bowl", "kcal": "150", "protein": "abc"},
            {"name": "Bread", "kcal": None, "carbs": 20, "fat": -3},
        ]
    }
    gateway = EstimationGateway(
        client=FakeEstimationClient(content=json.dumps(payload))
    )

    result = asyncio.run(gateway.analyze(message="soup", meal_label="Dinner"))

    assert result.meal_title == "Dinner"
    assert result.items[0].kcal == 150
    assert result.items[0].protein == 0
    assert result.items[1].quantity == ""
    assert result.items[1].fat == 0
    assert result.total is not None
    assert result.total.kcal == 150
    assert result.total.carbs == 20


def test_analyze_degrades_non_list_items_to_empty() -> None:
    gateway = EstimationGateway(
        client=FakeEstimationClient(content=json.dumps({"items": "rice"}))
    )

    result = asyncio.run(gateway.analyze(message="rice"))

    assert result.items == []
    assert result.meal_title == "Meal"
    assert result.total is not None
    assert result.total.kcal == 0


def test_analyze_requires_message_or_image(
    gateway: EstimationGateway, estimation_client: FakeEstimationClient
) -> None:
    with pytest.raises(BadRequestError):
        asyncio.run(gateway.analyze(message="  ", image_base64=None))

    assert estimation_client.calls == []


def test_missing_credential_fails_before_parsing_body() -> None:
    gateway = EstimationGateway(client=None)

    with pytest.raises(ConfigurationError):
        asyncio.run(gateway.handle(b"{not json"))


def test_handle_rejects_invalid_json(gateway: EstimationGateway) -> None:
    with pytest.raises(BadRequestError) as excinfo:
        asyncio.run(gateway.handle(b"{not json"))

    assert excinfo.value.message == "Invalid JSON payload."


def test_handle_reads_camel_case_body(
    gateway: EstimationGateway, estimation_client: FakeEstimationClient
) -> None:
    body = json.dumps(
        {
            "message": "eggs",
            "imageBase64": "data:image/png;base64,AAAA",
            "mealLabel": "Lunch",
        }
    )

    asyncio.run(gateway.handle(body.encode()))

    user_content = estimation_client.calls[0]["messages"][1]["content"]
    assert user_content[0]["text"] == "Meal label: Lunch\nUser description: eggs"
    assert user_content[1]["image_url"]["url"] == "data:image/png;base64,AAAA"


def test_analyze_uses_low_temperature_and_bounded_output(
    gateway: EstimationGateway, estimation_client: FakeEstimationClient
) -> None:
    asyncio.run(gateway.analyze(message="salad"))

    call = estimation_client.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["max_tokens"] == 500
    assert call["temperature"] == 0.2
    assert call["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}


def test_truncated_json_is_a_format_error() -> None:
    gateway = EstimationGateway(
        client=FakeEstimationClient(content='{"mealTitle": "Pasta", "items": [')
    )

    with pytest.raises(UpstreamFormatError) as excinfo:
        asyncio.run(gateway.analyze(message="pasta"))

    assert excinfo.value.message == "Unable to analyze meal right now."


def test_empty_completion_is_a_format_error() -> None:
    gateway = EstimationGateway(client=FakeEstimationClient(content=None))

    with pytest.raises(UpstreamFormatError):
        asyncio.run(gateway.analyze(message="pasta"))


def test_service_failure_is_mapped_to_generic_error() -> None:
    gateway = EstimationGateway(
        client=FakeEstimationClient(error=RuntimeError("secret upstream detail"))
    )

    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(gateway.analyze(message="pasta"))

    assert not isinstance(excinfo.value, UpstreamFormatError)
    assert "secret" not in excinfo.value.message


def test_slow_service_times_out() -> None:
    gateway = EstimationGateway(
        client=FakeEstimationClient(delay=1.0), timeout_seconds=0.01
    )

    with pytest.raises(UpstreamTimeoutError):
        asyncio.run(gateway.analyze(message="pasta"))


def test_overflowing_item_totals_are_a_format_error() -> None:
    payload = {
        "items": [
            {"name": "Lard", "kcal": 1e308},
            {"name": "More lard", "kcal": 1e308},
        ]
    }
    gateway = EstimationGateway(
        client=FakeEstimationClient(content=json.dumps(payload))
    )

    with pytest.raises(UpstreamFormatError) as excinfo:
        asyncio.run(gateway.analyze(message="lard"))

    assert excinfo.value.message == "Unable to analyze meal right now."


def test_build_messages_uses_placeholders_without_description() -> None:
    messages = build_messages(None, "data:image/jpeg;base64,AAAA", None)

    user_content = messages[1]["content"]
    assert user_content[0]["text"] == "Meal label: Meal\nUser description: None"
    assert user_content[1]["type"] == "image_url"


def test_normalize_estimate_filters_non_object_items_and_clamps_confidence() -> None:
    result = normalize_estimate(
        {"items": ["rice", {"kcal": 10}], "confidence": 1.7, "notes": 5},
        "Snack",
    )

    assert len(result.items) == 1
    assert result.items[0].name == "Unknown item"
    assert result.confidence == 1.0
    assert result.notes is None


def test_normalize_estimate_ignores_non_numeric_confidence() -> None:
    result = normalize_estimate({"items": [], "confidence": "high"}, None)

    assert result.confidence is None


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (12, 12.0),
        ("3.5", 3.5),
        (None, 0.0),
        ("abc", 0.0),
        (True, 0.0),
        (float("nan"), 0.0),
        (-4, 0.0),
    ],
)
def test_coerce_macro(value: object, expected: float) -> None:
    assert coerce_macro(value) == expected
