"""
Active-ingredient knowledge: name normalization, tolerance classes and
conflicting families.
"""

from typing import Iterable

from skinplan.schemas import ActiveClass

# Strong actives: paced every other day once past adaptation
IRRITANT_ACTIVES = frozenset({
    "retinoid", "retinol", "retinal", "tretinoin", "adapalene",
    "benzoyl_peroxide", "aha", "bha",
    "glycolic_acid", "lactic_acid", "mandelic_acid", "salicylic_acid",
})

# Well-tolerated actives (niacinamide class): daily once past adaptation
TOLERATED_ACTIVES = frozenset({
    "niacinamide", "azelaic_acid", "vitamin_c", "ascorbic_acid",
    "alpha_arbutin", "tranexamic_acid",
})

INGREDIENT_ALIASES = {
    "salicylic": "salicylic_acid",
    "glycolic": "glycolic_acid",
    "lactic": "lactic_acid",
    "mandelic": "mandelic_acid",
    "azelaic": "azelaic_acid",
    "tranexamic": "tranexamic_acid",
    "arbutin": "alpha_arbutin",
    "vit_c": "vitamin_c",
    "retinoids": "retinoid",
    "bpo": "benzoyl_peroxide",
    "hyaluronic": "hyaluronic_acid",
}

INGREDIENT_FAMILIES = {
    "retinol": "retinoid",
    "retinal": "retinoid",
    "tretinoin": "retinoid",
    "adapalene": "retinoid",
    "salicylic_acid": "bha",
    "glycolic_acid": "aha",
    "lactic_acid": "aha",
    "mandelic_acid": "aha",
    "ascorbic_acid": "vitamin_c",
}

# Families that should not share a slot
CONFLICTING_FAMILIES = (
    frozenset({"retinoid", "aha"}),
    frozenset({"retinoid", "bha"}),
    frozenset({"retinoid", "benzoyl_peroxide"}),
)


def normalize_ingredient(name: str) -> str:
    key = name.strip().lower().replace("-", "_").replace(" ", "_")
    return INGREDIENT_ALIASES.get(key, key)


def ingredient_family(name: str) -> str:
    key = normalize_ingredient(name)
    return INGREDIENT_FAMILIES.get(key, key)


def _expanded(ingredients: Iterable[str]) -> set[str]:
    names: set[str] = set()
    for ingredient in ingredients:
        names.add(normalize_ingredient(ingredient))
        names.add(ingredient_family(ingredient))
    return names


def matches_hints(product_actives: Iterable[str], hints: Iterable[str]) -> bool:
    """True when any product active shares a name or family with a hint."""
    return bool(_expanded(product_actives) & _expanded(hints))


def classify_actives(ingredients: Iterable[str]) -> ActiveClass:
    names = _expanded(ingredients)
    if names & IRRITANT_ACTIVES:
        return ActiveClass.IRRITANT
    if names & TOLERATED_ACTIVES:
        return ActiveClass.TOLERATED
    return ActiveClass.NONE


def find_conflicts(ingredients: Iterable[str]) -> list[frozenset[str]]:
    families = {ingredient_family(i) for i in ingredients}
    return [pair for pair in CONFLICTING_FAMILIES if pair <= families]
