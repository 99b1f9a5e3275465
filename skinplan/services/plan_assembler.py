"""
PlanAssembler — pure aggregation of the pipeline outputs into a Plan28, plus
the generate_plan entry point that runs match → resolve → build → assemble.
"""

import logging
from typing import Iterable

from skinplan.errors import InvalidProfileError
from skinplan.schemas import (
    CoverageGap,
    DayPlan,
    Plan28,
    RecommendationRule,
    ResolvedStep,
    SkinProfile,
)
from skinplan.services import rule_matcher, schedule_builder, step_resolver
from skinplan.services.rule_matcher import RuleSet
from skinplan.services.step_resolver import MAX_ALTERNATES, Catalog

logger = logging.getLogger(__name__)


def assemble(
    profile: SkinProfile,
    matched_rule: RecommendationRule,
    resolved_steps: list[ResolvedStep],
    days: list[DayPlan],
    coverage_gaps: Iterable[CoverageGap] = (),
) -> Plan28:
    if len(days) != schedule_builder.PLAN_DAYS:
        raise ValueError(f"Plan28 needs {schedule_builder.PLAN_DAYS} days, got {len(days)}")

    return Plan28(
        profile_id=profile.id,
        profile_version=profile.version,
        user_id=profile.user_id,
        rule_id=matched_rule.id,
        rule_name=matched_rule.name,
        skin_type=profile.skin_type,
        main_goals=list(profile.concerns),
        resolved_steps=[step.model_copy(deep=True) for step in resolved_steps],
        days=[day.model_copy(deep=True) for day in days],
        coverage_gaps=[gap.model_copy() for gap in coverage_gaps],
    )


def validate_profile(profile: SkinProfile) -> None:
    missing: list[str] = []
    if profile.skin_type is None:
        missing.append("skin_type")
    if missing:
        raise InvalidProfileError(missing)


def generate_plan(
    profile: SkinProfile,
    rules: RuleSet,
    catalog: Catalog,
    *,
    max_alternates: int = MAX_ALTERNATES,
) -> Plan28:
    """Deterministically derive the 28-day plan for one profile version."""
    validate_profile(profile)

    rule = rule_matcher.match(profile, rules)
    resolved, gaps = step_resolver.resolve_steps(rule, profile, catalog, max_alternates=max_alternates)
    days = schedule_builder.build(
        resolved,
        withhold_adaptation_actives=profile.is_highly_sensitive,
    )
    plan = assemble(profile, rule, resolved, days, gaps)

    logger.info(
        f"Generated plan | Profile: {profile.id} v{profile.version} | Rule: {rule.id} | "
        f"Steps: {[s.step.value for s in resolved]} | Gaps: {[g.step.value for g in gaps]}"
    )
    return plan
