"""Quick smoke run — generates a plan from the seed data and prints a summary."""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

logging.basicConfig(level=logging.DEBUG)

from skinplan.catalog import load_snapshot
from skinplan.schemas import SensitivityLevel, SkinProfile, SkinType
from skinplan.services.plan_assembler import generate_plan
from skinplan.services.plan_validation import validate_plan

DATA_DIR = Path(__file__).parent.parent / "data"

# Realistic profile hitting the oily + acne rule
test_profile = SkinProfile(
    id="smoke-profile",
    version=1,
    user_id="smoke-user",
    skin_type=SkinType.OILY,
    sensitivity_level=SensitivityLevel.MEDIUM,
    acne_level=3,
    age_group="18_25",
    concerns=("acne", "pores"),
)


def main():
    snapshot = load_snapshot(DATA_DIR / "rules.json", DATA_DIR / "products.json")
    plan = generate_plan(test_profile, snapshot.rules, snapshot.products)

    print("=" * 60)
    print(f"Rule: {plan.rule_id} '{plan.rule_name}'")
    for step in plan.resolved_steps:
        names = [snapshot.products[pid].name for pid in step.product_ids]
        print(f"  {step.step.value:<12} {names} (alternates: {step.alternates}, {step.active_class.value})")
    if plan.coverage_gaps:
        print(f"Coverage gaps: {[g.step.value for g in plan.coverage_gaps]}")
    print("=" * 60)

    for day in plan.days:
        morning = [i.step.value for i in day.morning]
        evening = [i.step.value for i in day.evening]
        weekly = [i.step.value for i in day.weekly]
        print(f"Day {day.day_index:>2} [{day.phase.value:<11}] AM {morning} | PM {evening} | weekly {weekly}")

    result = validate_plan(plan, snapshot.products)
    print(f"\nValidation: {result.severity} errors={result.errors} warnings={result.warnings}")


if __name__ == "__main__":
    main()
