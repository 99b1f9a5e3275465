"""
Daily Tip Agent — writes a short, practical tip for the current plan day.

Takes the stored Plan28 and the day being viewed; never changes the plan.
Falls back to a built-in tip when no model is configured or the call fails.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping

from pydantic_ai import Agent, RunContext

from skinplan.config import get_settings
from skinplan.schemas import DailyTip, DayPlan, Plan28, Product

logger = logging.getLogger(__name__)

_settings = get_settings()
if not os.environ.get("ANTHROPIC_API_KEY") and _settings.claude_api_key:
    os.environ["ANTHROPIC_API_KEY"] = _settings.claude_api_key

DEFAULT_TIPS = [
    "Apply SPF every morning, even when it is cloudy. It is the foundation of protection against photoaging.",
    "Drink enough water through the day. Hydration from the inside supports your moisturizer.",
    "Be patient: a steady routine usually shows visible results after 4-6 weeks.",
    "If you notice irritation, pause your active ingredients for 2-3 days and keep only cleanser, moisturizer and SPF.",
    "Apply products with light upward strokes. It helps absorption and avoids tugging the skin.",
]


@dataclass
class DailyTipDeps:
    plan: Plan28
    day: DayPlan
    product_names: Mapping[int, str] = field(default_factory=dict)


daily_tip_agent = Agent(
    _settings.daily_tip_model,
    deps_type=DailyTipDeps,
    output_type=DailyTip,
    defer_model_check=True,
)


def _describe_slot(instances, names: Mapping[int, str]) -> str:
    if not instances:
        return "nothing"
    return ", ".join(f"{i.step.value}: {names.get(i.product_id, f'product {i.product_id}')}" for i in instances)


@daily_tip_agent.system_prompt
async def build_system_prompt(ctx: RunContext[DailyTipDeps]) -> str:
    plan = ctx.deps.plan
    day = ctx.deps.day
    names = ctx.deps.product_names

    lines = [
        f"Plan day: {day.day_index} of 28 ({day.phase.value} phase)",
        f"Skin type: {plan.skin_type.value if plan.skin_type else 'unknown'}",
        f"Main goals: {', '.join(plan.main_goals) if plan.main_goals else 'none specified'}",
        f"Morning: {_describe_slot(day.morning, names)}",
        f"Evening: {_describe_slot(day.evening, names)}",
    ]
    if day.weekly:
        lines.append(f"Weekly care today: {_describe_slot(day.weekly, names)}")

    context_str = "\n".join(f"  - {line}" for line in lines)

    return f"""You are a professional dermatologist giving a short daily skincare tip.

TODAY'S ROUTINE:
{context_str}

The tip must be:
1. Practical and concrete (2-3 sentences max)
2. Tied to today's day of the plan and its phase
3. Written in a friendly tone

Put only the tip text in `tip`, no preamble. Do NOT recommend products outside the routine above."""


def default_tip(day_index: int) -> str:
    return DEFAULT_TIPS[(day_index - 1) % len(DEFAULT_TIPS)]


def _fallback(day_index: int) -> DailyTip:
    return DailyTip(tip=default_tip(day_index), day=day_index, source="default")


async def get_daily_tip(
    plan: Plan28,
    day_index: int,
    products: Mapping[int, Product] | None = None,
    use_model: bool = True,
) -> DailyTip:
    day = next((d for d in plan.days if d.day_index == day_index), None)
    if day is None:
        raise ValueError(f"Plan for profile {plan.profile_id} has no day {day_index}")

    if not use_model:
        logger.info("Daily tip model not configured, returning default tip")
        return _fallback(day_index)

    names = {pid: p.name for pid, p in (products or {}).items()}
    deps = DailyTipDeps(plan=plan, day=day, product_names=names)

    try:
        result = await daily_tip_agent.run(f"Give me my tip for day {day_index}.", deps=deps)
    except Exception as e:
        logger.error(f"Daily tip generation failed for profile {plan.profile_id}: {e}", exc_info=True)
        return _fallback(day_index)

    tip = result.output.tip.strip()
    if not tip:
        return _fallback(day_index)

    logger.info(f"Daily tip generated | Profile: {plan.profile_id} | Day: {day_index}")
    return result.output.model_copy(update={"tip": tip, "day": day_index, "source": "model"})
