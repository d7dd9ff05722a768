"""Wire models exchanged with the estimation gateway."""

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic.alias_generators import to_camel

from meal_logger.domain.meals import MacroBreakdown, MealItem


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class AnalyzeRequest(_CamelModel):
    """Gateway request body."""

    message: str | None = None
    image_base64: str | None = None
    meal_label: str | None = None


class EstimateTotal(_CamelModel):
    """Aggregate macros reported by the gateway."""

    kcal: float = Field(ge=0.0, allow_inf_nan=False)
    protein: float = Field(ge=0.0, allow_inf_nan=False)
    carbs: float = Field(ge=0.0, allow_inf_nan=False)
    fat: float = Field(ge=0.0, allow_inf_nan=False)

    def to_domain(self) -> MacroBreakdown:
        return MacroBreakdown(
            kcal=self.kcal, protein=self.protein, carbs=self.carbs, fat=self.fat
        )


class EstimateItem(_CamelModel):
    """Normalized food item."""

    name: str = Field(min_length=1)
    quantity: str = ""
    kcal: float = Field(default=0.0, ge=0.0)
    protein: float = Field(default=0.0, ge=0.0)
    carbs: float = Field(default=0.0, ge=0.0)
    fat: float = Field(default=0.0, ge=0.0)

    def to_domain(self) -> MealItem:
        return MealItem(
            name=self.name,
            quantity=self.quantity,
            kcal=self.kcal,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
        )


class NormalizedEstimate(_CamelModel):
    """Gateway success response with numeric, recomputed macros.

    A blank title and a malformed ``total`` are tolerated: the client falls
    back to its own meal label and to the sum of the items.
    """

    meal_title: str = ""
    items: list[EstimateItem] = Field(default_factory=list)
    notes: str | None = None
    confidence: float | None = None
    total: EstimateTotal | None = None
    raw: str | None = None

    @field_validator("total", mode="wrap")
    @classmethod
    def _drop_malformed_total(
        cls, value: object, handler: ValidatorFunctionWrapHandler
    ) -> EstimateTotal | None:
        try:
            return handler(value)
        except ValidationError:
            return None

    def to_payload(self) -> dict[str, object]:
        """Serialize with camelCase keys, omitting absent optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
