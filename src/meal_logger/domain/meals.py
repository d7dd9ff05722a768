"""Domain models for logged meals."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import UUID, uuid4


@dataclass(frozen=True)
class MacroBreakdown:
    """Energy (kcal) and macronutrients (grams)."""

    kcal: float
    protein: float
    carbs: float
    fat: float

    @classmethod
    def zero(cls) -> "MacroBreakdown":
        """Return an empty breakdown."""
        return cls(kcal=0.0, protein=0.0, carbs=0.0, fat=0.0)


@dataclass(frozen=True)
class MealItem:
    """Single food component of a meal."""

    name: str
    quantity: str
    kcal: float
    protein: float
    carbs: float
    fat: float

    @property
    def macros(self) -> MacroBreakdown:
        return MacroBreakdown(
            kcal=self.kcal, protein=self.protein, carbs=self.carbs, fat=self.fat
        )


@dataclass(frozen=True)
class MealEntry:
    """A logged meal with its aggregate macros."""

    title: str
    time: str
    macros: MacroBreakdown
    items: tuple[MealItem, ...]
    image: str | None = None
    notes: str | None = None
    confidence: float | None = None
    id: UUID = field(default_factory=uuid4)


def sum_macros(values: Iterable[MealItem | MacroBreakdown]) -> MacroBreakdown:
    """Element-wise sum of items or breakdowns."""
    total = MacroBreakdown.zero()
    for value in values:
        macros = value.macros if isinstance(value, MealItem) else value
        total = MacroBreakdown(
            kcal=total.kcal + macros.kcal,
            protein=total.protein + macros.protein,
            carbs=total.carbs + macros.carbs,
            fat=total.fat + macros.fat,
        )
    return total
