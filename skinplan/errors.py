"""
Plan generation errors. Every error carries a discriminating `kind` so the
calling layer can map it without string matching.
"""

import enum


class ErrorKind(str, enum.Enum):
    INVALID_PROFILE = "invalid_profile"
    NO_RULE_MATCHED = "no_rule_matched"
    UNKNOWN_PRODUCT = "unknown_product"
    PLAN_NOT_FOUND = "plan_not_found"


class PlanError(Exception):
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class InvalidProfileError(PlanError):
    """Profile is missing mandatory fields. Caller must fix input; not retried."""

    kind = ErrorKind.INVALID_PROFILE

    def __init__(self, missing: list[str]):
        super().__init__(f"Profile is missing mandatory fields: {', '.join(missing)}")
        self.missing = missing


class NoRuleMatchedError(PlanError):
    """Not even the built-in default rule could be keyed for the profile."""

    kind = ErrorKind.NO_RULE_MATCHED


class UnknownProductError(PlanError):
    kind = ErrorKind.UNKNOWN_PRODUCT

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} is unknown or unpublished")
        self.product_id = product_id


class PlanNotFoundError(PlanError):
    kind = ErrorKind.PLAN_NOT_FOUND
