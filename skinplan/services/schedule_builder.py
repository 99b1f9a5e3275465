"""
ScheduleBuilder — expands resolved steps into a 28-day calendar.

Phases: adaptation (days 1-7), ramp (8-21), maintenance (22-28).
Always-on steps run every day; actives are paced by phase and tolerance class;
weekly steps land on one fixed day of each 7-day window.
"""

import enum

from skinplan.schemas import (
    MANDATORY_STEPS,
    STEP_ORDER,
    ActiveClass,
    DayPlan,
    PlanPhase,
    ResolvedStep,
    StepInstance,
    StepName,
)

PLAN_DAYS = 28
ADAPTATION_LAST_DAY = 7
RAMP_LAST_DAY = 21

# Day within each 7-day window for masks (days 3, 10, 17, 24)
WEEKLY_OFFSET = 3

PHASE_FIRST_DAY = {
    PlanPhase.ADAPTATION: 1,
    PlanPhase.RAMP: ADAPTATION_LAST_DAY + 1,
    PlanPhase.MAINTENANCE: RAMP_LAST_DAY + 1,
}

# Interval in days between appearances of a paced step, counted from the phase's first day
PACING = {
    ActiveClass.IRRITANT: {
        PlanPhase.ADAPTATION: 3,
        PlanPhase.RAMP: 2,
        PlanPhase.MAINTENANCE: 2,
    },
    ActiveClass.TOLERATED: {
        PlanPhase.ADAPTATION: 3,
        PlanPhase.RAMP: 1,
        PlanPhase.MAINTENANCE: 1,
    },
}

WEEKLY_STEPS = frozenset({StepName.MASK})


class Cadence(str, enum.Enum):
    DAILY = "daily"
    PACED = "paced"
    WEEKLY = "weekly"


def phase_for_day(day_index: int) -> PlanPhase:
    if not 1 <= day_index <= PLAN_DAYS:
        raise ValueError(f"day_index must be within 1..{PLAN_DAYS}, got {day_index}")
    if day_index <= ADAPTATION_LAST_DAY:
        return PlanPhase.ADAPTATION
    if day_index <= RAMP_LAST_DAY:
        return PlanPhase.RAMP
    return PlanPhase.MAINTENANCE


def cadence_for(resolved: ResolvedStep) -> Cadence:
    if resolved.step in WEEKLY_STEPS:
        return Cadence.WEEKLY
    if resolved.step in MANDATORY_STEPS:
        return Cadence.DAILY
    if resolved.step == StepName.TREATMENT or resolved.active_class != ActiveClass.NONE:
        return Cadence.PACED
    return Cadence.DAILY


def pacing_class(resolved: ResolvedStep) -> ActiveClass:
    # A treatment with no recognised active is paced like a tolerated one
    if resolved.active_class == ActiveClass.NONE:
        return ActiveClass.TOLERATED
    return resolved.active_class


def is_scheduled(resolved: ResolvedStep, day_index: int, withhold_adaptation_actives: bool = False) -> bool:
    cadence = cadence_for(resolved)
    if cadence == Cadence.DAILY:
        return True
    if cadence == Cadence.WEEKLY:
        return (day_index - 1) % 7 + 1 == WEEKLY_OFFSET

    phase = phase_for_day(day_index)
    if phase == PlanPhase.ADAPTATION and withhold_adaptation_actives:
        return False
    interval = PACING[pacing_class(resolved)][phase]
    return (day_index - PHASE_FIRST_DAY[phase]) % interval == 0


def slots_for(resolved: ResolvedStep) -> tuple[str, ...]:
    cadence = cadence_for(resolved)
    if cadence == Cadence.WEEKLY:
        return ("weekly",)
    if resolved.step == StepName.SPF:
        return ("morning",)
    if cadence == Cadence.PACED:
        # Irritants are photosensitising: evening only
        if pacing_class(resolved) == ActiveClass.IRRITANT:
            return ("evening",)
        return ("morning",)
    return ("morning", "evening")


def build(
    resolved_steps: list[ResolvedStep],
    *,
    withhold_adaptation_actives: bool = False,
) -> list[DayPlan]:
    """Return exactly 28 DayPlan entries. Same input always yields the same output."""
    ordered = sorted(resolved_steps, key=lambda r: STEP_ORDER.index(r.step))

    days: list[DayPlan] = []
    for day_index in range(1, PLAN_DAYS + 1):
        slots: dict[str, list[StepInstance]] = {"morning": [], "evening": [], "weekly": []}

        for resolved in ordered:
            if not resolved.product_ids:
                continue
            if not is_scheduled(resolved, day_index, withhold_adaptation_actives):
                continue
            for slot in slots_for(resolved):
                for product_id in resolved.product_ids:
                    slots[slot].append(
                        StepInstance(
                            step=resolved.step,
                            product_id=product_id,
                            alternates=list(resolved.alternates),
                        )
                    )

        days.append(
            DayPlan(
                day_index=day_index,
                phase=phase_for_day(day_index),
                morning=slots["morning"],
                evening=slots["evening"],
                weekly=slots["weekly"],
                is_weekly_focus_day=bool(slots["weekly"]),
            )
        )

    return days
