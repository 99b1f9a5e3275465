"""
RuleMatcher — picks the single best recommendation rule for a skin profile.

Rules are tried by priority (highest first, ties by rule id ascending) and the
first rule whose every condition holds wins. When nothing matches, a built-in
default rule keyed only by skin type keeps the routine from being empty.
"""

import enum
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Union

from skinplan.errors import NoRuleMatchedError
from skinplan.schemas import (
    Condition,
    Equals,
    In,
    Overlaps,
    Range,
    RecommendationRule,
    SkinProfile,
    SkinType,
    StepName,
    StepSpec,
)

logger = logging.getLogger(__name__)

DEFAULT_RULE_ID = 0

RuleSet = Union[Mapping[int, RecommendationRule], Iterable[RecommendationRule]]


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def condition_holds(condition: Condition, profile: SkinProfile) -> bool:
    """Evaluate one condition. A missing profile field never satisfies it."""
    value = getattr(profile, condition.field, None)
    if value is None:
        return False

    if isinstance(condition, Equals):
        return _plain(value) == condition.value

    if isinstance(condition, In):
        return _plain(value) in condition.values

    if isinstance(condition, Overlaps):
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            return False
        return any(_plain(item) in condition.values for item in value)

    if isinstance(condition, Range):
        if not _is_number(value):
            return False
        if condition.gte is not None and value < condition.gte:
            return False
        if condition.lte is not None and value > condition.lte:
            return False
        return True

    raise TypeError(f"Unsupported condition variant: {type(condition).__name__}")


def rule_matches(rule: RecommendationRule, profile: SkinProfile) -> bool:
    return all(condition_holds(c, profile) for c in rule.conditions)


def default_rule(skin_type: SkinType) -> RecommendationRule:
    """Base care (cleanser, moisturizer, SPF) for a skin type."""
    skin = skin_type.value
    return RecommendationRule(
        id=DEFAULT_RULE_ID,
        name=f"Default care ({skin})",
        priority=0,
        conditions=(Equals(field="skin_type", value=skin),),
        steps={
            StepName.CLEANSER: StepSpec(category=("cleanser",), skin_types=(skin,)),
            StepName.MOISTURIZER: StepSpec(category=("moisturizer",), skin_types=(skin,)),
            StepName.SPF: StepSpec(category=("spf",)),
        },
    )


def ordered_rules(rules: RuleSet) -> list[RecommendationRule]:
    candidates = rules.values() if isinstance(rules, Mapping) else rules
    return sorted(
        (r for r in candidates if r.is_active),
        key=lambda r: (-r.priority, r.id),
    )


def match(profile: SkinProfile, rules: RuleSet) -> RecommendationRule:
    for rule in ordered_rules(rules):
        if rule_matches(rule, profile):
            logger.info(
                f"Matched rule {rule.id} '{rule.name}' (priority {rule.priority}) "
                f"for profile {profile.id} v{profile.version}"
            )
            return rule

    if profile.skin_type is None:
        raise NoRuleMatchedError(
            f"No rule matched profile {profile.id} and no skin type to key the default rule"
        )

    logger.info(f"No rule matched profile {profile.id}; using default for {profile.skin_type.value}")
    return default_rule(profile.skin_type)
