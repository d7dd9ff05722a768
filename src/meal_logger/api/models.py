"""Pydantic models for session endpoint payloads."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MealSubmission(BaseModel):
    """Meal text and/or photo submitted to a session."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str | None = None
    image_base64: str | None = None


class DateSelection(BaseModel):
    """Date to log subsequent meals under."""

    date: str = Field(min_length=1)
