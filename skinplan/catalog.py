"""
Rule store / product catalog loading.

Rules are authored as JSON blobs (`name`, `conditionsJson`, `stepsJson`,
`priority`, `isActive`) with ad-hoc condition shapes:

    {"skinType": "oily", "acneLevel": {"gte": 3}, "ageGroup": ["18_25", "26_30"]}

These are parsed once into the tagged condition variants so the matcher never
sees raw dicts. Products use camelCase fields and are parsed into `Product`.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from skinplan.schemas import (
    Condition,
    Equals,
    In,
    Overlaps,
    Product,
    Range,
    RecommendationRule,
    StepName,
    StepSpec,
)

logger = logging.getLogger(__name__)

# Authoring field name → SkinProfile attribute
FIELD_ALIASES = {
    "skinType": "skin_type",
    "skin_type": "skin_type",
    "sensitivity": "sensitivity_level",
    "sensitivityLevel": "sensitivity_level",
    "sensitivity_level": "sensitivity_level",
    "acneLevel": "acne_level",
    "acne_level": "acne_level",
    "dehydrationLevel": "dehydration",
    "dehydration": "dehydration",
    "pigmentationLevel": "pigmentation",
    "pigmentation": "pigmentation",
    "photoaging": "photoaging",
    "photoagingRisk": "photoaging",
    "oiliness": "oiliness",
    "ageGroup": "age_group",
    "age_group": "age_group",
    "concerns": "concerns",
    "mainGoals": "concerns",
    "hasPregnancy": "has_pregnancy",
    "has_pregnancy": "has_pregnancy",
    "diagnoses": "diagnoses",
    "contraindications": "contraindications",
    "allergies": "allergies",
}

# Step spec keys accepted in camelCase as well
STEP_SPEC_ALIASES = {
    "skinTypes": "skin_types",
    "activeIngredients": "active_ingredients",
    "avoidIf": "avoid_if",
    "maxItems": "max_items",
    "isNonComedogenic": "non_comedogenic",
    "nonComedogenic": "non_comedogenic",
    "isFragranceFree": "fragrance_free",
    "fragranceFree": "fragrance_free",
}

PRODUCT_ALIASES = {
    "skinTypes": "skin_types",
    "activeIngredients": "active_ingredients",
    "avoidIf": "avoid_if",
    "isNonComedogenic": "non_comedogenic",
    "isFragranceFree": "fragrance_free",
}


def _field_name(raw_field: str) -> str:
    try:
        return FIELD_ALIASES[raw_field]
    except KeyError:
        raise ValueError(f"Unknown condition field: {raw_field!r}") from None


def _parse_one(field_name: str, raw: Any) -> Condition:
    if isinstance(raw, list):
        return In(field=field_name, values=tuple(raw))

    if isinstance(raw, dict):
        if "hasSome" in raw:
            return Overlaps(field=field_name, values=tuple(raw["hasSome"]))
        if "in" in raw:
            return In(field=field_name, values=tuple(raw["in"]))
        if "equals" in raw:
            return Equals(field=field_name, value=raw["equals"])
        if "gte" in raw or "lte" in raw:
            return Range(field=field_name, gte=raw.get("gte"), lte=raw.get("lte"))
        raise ValueError(f"Unsupported condition shape for {field_name!r}: {raw!r}")

    return Equals(field=field_name, value=raw)


def parse_conditions(raw: Mapping[str, Any]) -> tuple[Condition, ...]:
    """Convert an authoring condition blob into tagged condition variants."""
    return tuple(_parse_one(_field_name(key), value) for key, value in raw.items())


def parse_steps(raw: Mapping[str, Any]) -> dict[StepName, StepSpec]:
    steps: dict[StepName, StepSpec] = {}
    for name, spec in raw.items():
        try:
            step_name = StepName(name)
        except ValueError:
            raise ValueError(f"Unknown routine step: {name!r}") from None
        data = {STEP_SPEC_ALIASES.get(k, k): v for k, v in (spec or {}).items()}
        steps[step_name] = StepSpec(**data)
    return steps


def parse_rule(raw: Mapping[str, Any]) -> RecommendationRule:
    return RecommendationRule(
        id=raw["id"],
        name=raw["name"],
        priority=raw.get("priority", 0),
        conditions=parse_conditions(raw.get("conditionsJson", raw.get("conditions", {}))),
        steps=parse_steps(raw.get("stepsJson", raw.get("steps", {}))),
        is_active=raw.get("isActive", raw.get("is_active", True)),
    )


def parse_product(raw: Mapping[str, Any]) -> Product:
    data = {PRODUCT_ALIASES.get(k, k): v for k, v in raw.items()}
    return Product(**data)


def load_rules(path: str | Path) -> dict[int, RecommendationRule]:
    with open(path, encoding="utf-8") as f:
        raw_rules = json.load(f)
    rules: dict[int, RecommendationRule] = {}
    for raw in raw_rules:
        rule = parse_rule(raw)
        if rule.id in rules:
            raise ValueError(f"Duplicate rule id {rule.id} in {path}")
        rules[rule.id] = rule
    logger.info(f"Loaded {len(rules)} rules from {path}")
    return rules


def load_products(path: str | Path) -> dict[int, Product]:
    with open(path, encoding="utf-8") as f:
        raw_products = json.load(f)
    products: dict[int, Product] = {}
    for raw in raw_products:
        product = parse_product(raw)
        if product.id in products:
            raise ValueError(f"Duplicate product id {product.id} in {path}")
        products[product.id] = product
    logger.info(f"Loaded {len(products)} products from {path}")
    return products


@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable rules + products pair shared by every request of a process."""

    rules: Mapping[int, RecommendationRule] = field(default_factory=lambda: MappingProxyType({}))
    products: Mapping[int, Product] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_records(cls, rules, products) -> "CatalogSnapshot":
        return cls(
            rules=MappingProxyType({r.id: r for r in rules}),
            products=MappingProxyType({p.id: p for p in products}),
        )

    def published_product(self, product_id: int) -> Product | None:
        product = self.products.get(product_id)
        if product is None or not product.published:
            return None
        return product


def load_snapshot(rules_path: str | Path, catalog_path: str | Path) -> CatalogSnapshot:
    return CatalogSnapshot(
        rules=MappingProxyType(load_rules(rules_path)),
        products=MappingProxyType(load_products(catalog_path)),
    )
