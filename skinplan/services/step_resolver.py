"""
StepResolver — binds each routine step of the matched rule to concrete products.

Candidates are filtered by the step spec and the profile's contraindications,
ranked by priority (desc) then product id (asc), and split into primary
products and alternates kept for user-initiated replacement.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Optional, Union

from skinplan.schemas import (
    MANDATORY_STEPS,
    STEP_ORDER,
    CoverageGap,
    Product,
    RecommendationRule,
    ResolvedStep,
    SkinProfile,
    StepName,
    StepSpec,
)
from skinplan.services.ingredients import classify_actives, matches_hints

logger = logging.getLogger(__name__)

MAX_ALTERNATES = 5

# Rule authoring names → catalog category
CATEGORY_ALIASES = {
    "cream": "moisturizer",
    "sunscreen": "spf",
}

Catalog = Union[Mapping[int, Product], Iterable[Product]]

# Combination variants a catalog may tag instead of the base skin type
SKIN_TYPE_VARIANTS = {
    "combo": ("combination_dry", "combination_oily"),
    "dry": ("combination_dry",),
    "oily": ("combination_oily",),
}


def catalog_products(catalog: Catalog) -> list[Product]:
    """Products of a catalog mapping or iterable, one per id."""
    items = catalog.values() if isinstance(catalog, Mapping) else catalog
    return list({p.id: p for p in items}.values())


def wanted_categories(step_name: StepName, spec: StepSpec) -> tuple[str, ...]:
    categories = spec.category or (step_name.value,)
    return tuple(CATEGORY_ALIASES.get(c, c) for c in categories)


def expand_skin_types(skin_types: Iterable[str]) -> frozenset[str]:
    expanded: set[str] = set()
    for skin_type in skin_types:
        expanded.add(skin_type)
        expanded.update(SKIN_TYPE_VARIANTS.get(skin_type, ()))
    return frozenset(expanded)


def _matches_category(product: Product, categories: tuple[str, ...]) -> bool:
    for category in categories:
        if product.category == category or product.step == category:
            return True
        if product.step and product.step.startswith(f"{category}_"):
            return True
    return False


def _matches_skin_type(
    product: Product,
    categories: tuple[str, ...],
    spec: StepSpec,
    skin_type: Optional[str],
) -> bool:
    # Sunscreen is chosen regardless of skin type
    if not spec.skin_types or "spf" in categories:
        return True
    # A product without declared skin types suits every skin type
    if not product.skin_types:
        return True
    wanted = expand_skin_types((skin_type,) if skin_type else spec.skin_types)
    return bool(product.skin_types & wanted)


def is_eligible(
    product: Product,
    step_name: StepName,
    spec: StepSpec,
    avoid_flags: frozenset[str],
    skin_type: Optional[str] = None,
) -> bool:
    """skin_type is the profile's; without one the step's own skin types are used."""
    if not product.published:
        return False
    categories = wanted_categories(step_name, spec)
    if not _matches_category(product, categories):
        return False
    if spec.concerns and not (product.concerns & set(spec.concerns)):
        return False
    if not _matches_skin_type(product, categories, spec, skin_type):
        return False
    if (
        spec.active_ingredients
        and product.active_ingredients
        and not matches_hints(product.active_ingredients, spec.active_ingredients)
    ):
        return False
    if spec.non_comedogenic and not product.non_comedogenic:
        return False
    if spec.fragrance_free and not product.fragrance_free:
        return False
    if product.avoid_if & (avoid_flags | set(spec.avoid_if)):
        return False
    return True


def rank_candidates(
    step_name: StepName,
    spec: StepSpec,
    profile: SkinProfile,
    catalog: Catalog,
) -> list[Product]:
    avoid_flags = profile.contraindication_flags()
    skin_type = profile.skin_type.value if profile.skin_type else None
    eligible = [
        p for p in catalog_products(catalog)
        if is_eligible(p, step_name, spec, avoid_flags, skin_type)
    ]
    return sorted(eligible, key=lambda p: (-p.priority, p.id))


def resolve(
    step_name: StepName,
    step_spec: StepSpec,
    profile: SkinProfile,
    catalog: Catalog,
    max_alternates: int = MAX_ALTERNATES,
) -> ResolvedStep:
    """Pick up to max_items primary products and the next-ranked alternates.

    An empty product_ids list means the catalog has no eligible product.
    """
    ranked = rank_candidates(step_name, step_spec, profile, catalog)
    primary = ranked[: step_spec.max_items]
    alternates = ranked[step_spec.max_items : step_spec.max_items + max_alternates]

    actives: set[str] = set()
    for product in primary:
        actives.update(product.active_ingredients)

    return ResolvedStep(
        step=step_name,
        product_ids=[p.id for p in primary],
        alternates=[p.id for p in alternates],
        active_class=classify_actives(actives),
    )


def resolve_steps(
    rule: RecommendationRule,
    profile: SkinProfile,
    catalog: Catalog,
    max_alternates: int = MAX_ALTERNATES,
) -> tuple[list[ResolvedStep], list[CoverageGap]]:
    """Resolve every step of a rule. Empty steps are dropped; empty mandatory
    steps are reported as coverage gaps."""
    resolved: list[ResolvedStep] = []
    gaps: list[CoverageGap] = []

    for step_name in STEP_ORDER:
        spec = rule.steps.get(step_name)
        if spec is None:
            continue

        step = resolve(step_name, spec, profile, catalog, max_alternates=max_alternates)
        if step.product_ids:
            resolved.append(step)
        elif step_name in MANDATORY_STEPS:
            logger.warning(
                f"Catalog coverage gap: no eligible products for mandatory step "
                f"'{step_name.value}' (rule {rule.id} '{rule.name}', profile {profile.id})"
            )
            gaps.append(CoverageGap(step=step_name, rule_id=rule.id))
        else:
            logger.debug(f"No products for optional step '{step_name.value}' (rule {rule.id}), omitted")

    return resolved, gaps
