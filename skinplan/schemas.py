"""
Pydantic schemas — the single source of truth for all data contracts.

SkinProfile, RecommendationRule and Product are read-only snapshots handed in by
the caller. Plan28 is the handoff contract back: it is serialized as JSON in the
DB and patched only by the product-replacement transform.
"""

from __future__ import annotations

import enum
from typing import Annotated, Iterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ── Enums ────────────────────────────────────────────────────────────────────


class SkinType(str, enum.Enum):
    DRY = "dry"
    OILY = "oily"
    COMBO = "combo"
    NORMAL = "normal"
    SENSITIVE = "sensitive"


class SensitivityLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class StepName(str, enum.Enum):
    """Routine slots, declared in layering order."""

    CLEANSER = "cleanser"
    TONER = "toner"
    SERUM = "serum"
    TREATMENT = "treatment"
    MOISTURIZER = "moisturizer"
    SPF = "spf"
    MASK = "mask"


STEP_ORDER: tuple[StepName, ...] = tuple(StepName)

MANDATORY_STEPS = frozenset({StepName.CLEANSER, StepName.MOISTURIZER, StepName.SPF})


class ActiveClass(str, enum.Enum):
    NONE = "none"
    TOLERATED = "tolerated"
    IRRITANT = "irritant"


class PlanPhase(str, enum.Enum):
    ADAPTATION = "adaptation"
    RAMP = "ramp"
    MAINTENANCE = "maintenance"


# ── Skin profile ─────────────────────────────────────────────────────────────


class SkinProfile(BaseModel):
    """Versioned snapshot of a user's skin state, derived from quiz answers."""

    model_config = ConfigDict(frozen=True)

    id: str
    version: int = 1
    user_id: Optional[str] = None

    skin_type: Optional[SkinType] = None
    sensitivity_level: Optional[SensitivityLevel] = None

    # Severity scores
    acne_level: Optional[int] = Field(default=None, ge=0, le=4)
    dehydration: Optional[int] = Field(default=None, ge=0, le=5)
    pigmentation: Optional[int] = Field(default=None, ge=0, le=5)
    photoaging: Optional[int] = Field(default=None, ge=0, le=5)
    oiliness: Optional[int] = Field(default=None, ge=0, le=5)

    age_group: Optional[str] = None
    concerns: tuple[str, ...] = ()

    # Medical markers
    has_pregnancy: bool = False
    diagnoses: tuple[str, ...] = ()
    contraindications: tuple[str, ...] = ()
    allergies: tuple[str, ...] = ()

    @property
    def is_highly_sensitive(self) -> bool:
        return self.sensitivity_level in (SensitivityLevel.HIGH, SensitivityLevel.VERY_HIGH)

    def contraindication_flags(self) -> frozenset[str]:
        """Flags matched against a product's avoid_if set."""
        flags = set(self.contraindications) | set(self.diagnoses) | set(self.allergies)
        if self.has_pregnancy:
            flags.add("pregnant")
        if self.sensitivity_level == SensitivityLevel.VERY_HIGH:
            flags.add("very_high_sensitivity")
        return frozenset(flags)


# ── Rule conditions ──────────────────────────────────────────────────────────

Scalar = Union[bool, int, float, str]


class Equals(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["equals"] = "equals"
    field: str
    value: Scalar


class In(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["in"] = "in"
    field: str
    values: tuple[Scalar, ...]


class Overlaps(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["overlaps"] = "overlaps"
    field: str
    values: tuple[str, ...]


class Range(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["range"] = "range"
    field: str
    gte: Optional[float] = None
    lte: Optional[float] = None


Condition = Annotated[Union[Equals, In, Overlaps, Range], Field(discriminator="kind")]


# ── Rules & catalog ──────────────────────────────────────────────────────────


class StepSpec(BaseModel):
    """Product-selection constraints for one routine step of a rule."""

    model_config = ConfigDict(frozen=True)

    category: tuple[str, ...] = ()
    concerns: tuple[str, ...] = ()
    skin_types: tuple[str, ...] = ()
    active_ingredients: tuple[str, ...] = ()
    avoid_if: tuple[str, ...] = ()
    max_items: int = Field(default=1, ge=1)
    non_comedogenic: Optional[bool] = None
    fragrance_free: Optional[bool] = None


class RecommendationRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    priority: int = 0
    conditions: tuple[Condition, ...] = ()
    steps: dict[StepName, StepSpec] = Field(default_factory=dict)
    is_active: bool = True


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    brand: str = ""
    category: str
    step: Optional[str] = Field(default=None, description="e.g. 'serum_niacinamide'")
    skin_types: frozenset[str] = frozenset()
    concerns: frozenset[str] = frozenset()
    active_ingredients: frozenset[str] = frozenset()
    avoid_if: frozenset[str] = frozenset()
    priority: int = 0
    published: bool = True
    non_comedogenic: bool = False
    fragrance_free: bool = False


# ── Plan ─────────────────────────────────────────────────────────────────────


class ResolvedStep(BaseModel):
    step: StepName
    product_ids: list[int] = Field(default_factory=list)
    alternates: list[int] = Field(default_factory=list)
    active_class: ActiveClass = ActiveClass.NONE


class CoverageGap(BaseModel):
    """A mandatory step the catalog could not fill."""

    step: StepName
    rule_id: int
    reason: str = "no eligible products"


class StepInstance(BaseModel):
    step: StepName
    product_id: int
    alternates: list[int] = Field(default_factory=list)


class DayPlan(BaseModel):
    day_index: int = Field(ge=1, le=28)
    phase: PlanPhase
    morning: list[StepInstance] = Field(default_factory=list)
    evening: list[StepInstance] = Field(default_factory=list)
    weekly: list[StepInstance] = Field(default_factory=list)
    is_weekly_focus_day: bool = False

    def instances(self) -> Iterator[StepInstance]:
        yield from self.morning
        yield from self.evening
        yield from self.weekly


class Plan28(BaseModel):
    """28-day routine for one profile version."""

    profile_id: str
    profile_version: int
    user_id: Optional[str] = None
    rule_id: int
    rule_name: str
    skin_type: Optional[SkinType] = None
    main_goals: list[str] = Field(default_factory=list)
    resolved_steps: list[ResolvedStep] = Field(default_factory=list)
    days: list[DayPlan] = Field(default_factory=list)
    coverage_gaps: list[CoverageGap] = Field(default_factory=list)

    def product_ids(self) -> set[int]:
        """Every product id referenced anywhere in the plan."""
        ids: set[int] = set()
        for resolved in self.resolved_steps:
            ids.update(resolved.product_ids)
            ids.update(resolved.alternates)
        for day in self.days:
            for instance in day.instances():
                ids.add(instance.product_id)
                ids.update(instance.alternates)
        return ids


# ── API payloads ─────────────────────────────────────────────────────────────


class GeneratePlanRequest(BaseModel):
    profile: SkinProfile


class ReplaceProductRequest(BaseModel):
    profile_id: str
    profile_version: Optional[int] = None
    old_product_id: int
    new_product_id: int


class DailyTipRequest(BaseModel):
    profile_id: str
    profile_version: Optional[int] = None
    day: int = Field(default=1, ge=1, le=28)


class DailyTip(BaseModel):
    """Short tip for the current plan day, returned by the daily tip agent."""

    tip: str = Field(description="2-3 practical sentences tied to today's routine")
    day: int
    source: str = Field(default="model", description="'model' or 'default'")
