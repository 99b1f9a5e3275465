"""
Plan validation — checks a Plan28 against the catalog before it is shown.

Errors make the plan unusable (wrong shape, unpublished products, day steps
without a resolved step). Warnings flag empty days and conflicting actives
sharing a slot.
"""

import logging
from dataclasses import dataclass, field

from skinplan.schemas import Plan28, StepInstance
from skinplan.services.ingredients import find_conflicts
from skinplan.services.schedule_builder import PLAN_DAYS
from skinplan.services.step_resolver import Catalog, catalog_products

logger = logging.getLogger(__name__)


@dataclass
class PlanValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    incompatible_days: list[int] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def severity(self) -> str:
        if self.errors:
            return "error"
        if self.warnings:
            return "warning"
        return "ok"


def _check_products(plan: Plan28, published: set[int], known: set[int], result: PlanValidationResult) -> None:
    for product_id in sorted(plan.product_ids()):
        if product_id not in known:
            result.errors.append(f"PRODUCT_{product_id}_UNKNOWN")
        elif product_id not in published:
            result.errors.append(f"PRODUCT_{product_id}_NOT_PUBLISHED")


def _slot_conflicts(instances: list[StepInstance], actives_by_id: dict[int, frozenset[str]]) -> list[str]:
    ingredients: set[str] = set()
    for instance in instances:
        ingredients.update(actives_by_id.get(instance.product_id, frozenset()))
    return ["+".join(sorted(pair)) for pair in find_conflicts(ingredients)]


def validate_plan(plan: Plan28, catalog: Catalog) -> PlanValidationResult:
    result = PlanValidationResult()
    products = catalog_products(catalog)
    known = {p.id for p in products}
    published = {p.id for p in products if p.published}
    actives_by_id = {p.id: p.active_ingredients for p in products}

    if len(plan.days) != PLAN_DAYS:
        result.errors.append(f"PLAN_HAS_{len(plan.days)}_DAYS")
    if [d.day_index for d in plan.days] != list(range(1, len(plan.days) + 1)):
        result.errors.append("DAY_INDEXES_OUT_OF_ORDER")

    _check_products(plan, published, known, result)

    primary_by_step = {s.step: set(s.product_ids) for s in plan.resolved_steps}

    for day in plan.days:
        instances = list(day.instances())
        if not instances:
            result.warnings.append(f"DAY_{day.day_index}_HAS_NO_STEPS")

        for instance in instances:
            if instance.step not in primary_by_step:
                result.errors.append(f"DAY_{day.day_index}_STEP_{instance.step.value}_NOT_RESOLVED")
            elif instance.product_id not in primary_by_step[instance.step]:
                result.errors.append(
                    f"DAY_{day.day_index}_PRODUCT_{instance.product_id}_NOT_IN_STEP_{instance.step.value}"
                )

        for slot_name, slot in (("morning", day.morning), ("evening", day.evening)):
            for conflict in _slot_conflicts(slot, actives_by_id):
                result.warnings.append(f"DAY_{day.day_index}_{slot_name.upper()}_CONFLICT_{conflict}")
                if day.day_index not in result.incompatible_days:
                    result.incompatible_days.append(day.day_index)

    if result.errors:
        logger.warning(f"Plan for profile {plan.profile_id} v{plan.profile_version} failed validation: {result.errors}")
    return result
