from skinplan.models.db import PlanRecord, ProductReplacement

__all__ = [
    "PlanRecord",
    "ProductReplacement",
]
