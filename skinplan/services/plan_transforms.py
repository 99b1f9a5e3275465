"""
Single-field updates over an existing Plan28. These never re-run matching,
resolution or scheduling; they return a new plan and leave the input intact.
"""

from skinplan.schemas import DayPlan, Plan28, StepInstance


def _swap(ids: list[int], old: int, new: int) -> list[int]:
    return [new if pid == old else pid for pid in ids]


def _swap_instance(instance: StepInstance, old: int, new: int) -> StepInstance:
    return instance.model_copy(
        update={
            "product_id": new if instance.product_id == old else instance.product_id,
            "alternates": _swap(instance.alternates, old, new),
        }
    )


def _swap_day(day: DayPlan, old: int, new: int) -> DayPlan:
    return day.model_copy(
        update={
            "morning": [_swap_instance(i, old, new) for i in day.morning],
            "evening": [_swap_instance(i, old, new) for i in day.evening],
            "weekly": [_swap_instance(i, old, new) for i in day.weekly],
        }
    )


def replace_product(plan: Plan28, old_product_id: int, new_product_id: int) -> Plan28:
    """Substitute old_product_id with new_product_id everywhere in the plan:
    day slots, every alternates list and the resolved steps."""
    resolved = [
        step.model_copy(
            update={
                "product_ids": _swap(step.product_ids, old_product_id, new_product_id),
                "alternates": _swap(step.alternates, old_product_id, new_product_id),
            }
        )
        for step in plan.resolved_steps
    ]
    days = [_swap_day(day, old_product_id, new_product_id) for day in plan.days]

    return plan.model_copy(
        update={
            "resolved_steps": resolved,
            "days": days,
            "coverage_gaps": [gap.model_copy() for gap in plan.coverage_gaps],
            "main_goals": list(plan.main_goals),
        }
    )
