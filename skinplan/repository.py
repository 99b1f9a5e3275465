"""
Plan repository — all DB access in one place.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from skinplan.models.db import PlanRecord, ProductReplacement
from skinplan.schemas import Plan28

logger = logging.getLogger(__name__)


class PlanRepository:
    """Single repository for all plan DB operations."""

    async def get_for_profile(
        self,
        db: AsyncSession,
        profile_id: str,
        profile_version: Optional[int] = None,
    ) -> Optional[PlanRecord]:
        """Exact version when given, else the newest stored version."""
        query = select(PlanRecord).where(PlanRecord.profile_id == profile_id)
        if profile_version is not None:
            query = query.where(PlanRecord.profile_version == profile_version)
        result = await db.execute(query.order_by(PlanRecord.profile_version.desc()).limit(1))
        return result.scalar_one_or_none()

    async def save_plan(self, db: AsyncSession, plan: Plan28) -> PlanRecord:
        record = PlanRecord(
            profile_id=plan.profile_id,
            profile_version=plan.profile_version,
            user_id=plan.user_id,
            rule_id=plan.rule_id,
            plan_json=plan.model_dump(mode="json"),
        )
        db.add(record)
        await db.commit()
        await db.refresh(record)
        logger.info(f"Saved plan {record.id} for profile {plan.profile_id} v{plan.profile_version}")
        return record

    async def update_plan(
        self,
        db: AsyncSession,
        record: PlanRecord,
        plan: Plan28,
        commit: bool = True,
    ) -> PlanRecord:
        """With commit=False the change is only flushed; the caller commits."""
        record.plan_json = plan.model_dump(mode="json")
        db.add(record)
        if not commit:
            await db.flush()
            return record
        await db.commit()
        await db.refresh(record)
        return record

    async def log_replacement(
        self,
        db: AsyncSession,
        plan_id: int,
        old_product_id: int,
        new_product_id: int,
        user_id: Optional[str] = None,
        commit: bool = True,
    ) -> None:
        entry = ProductReplacement(
            plan_id=plan_id,
            user_id=user_id,
            old_product_id=old_product_id,
            new_product_id=new_product_id,
        )
        db.add(entry)
        if commit:
            await db.commit()

    async def get_replacements(self, db: AsyncSession, plan_id: int) -> list[ProductReplacement]:
        result = await db.execute(
            select(ProductReplacement)
            .where(ProductReplacement.plan_id == plan_id)
            .order_by(ProductReplacement.id)
        )
        return list(result.scalars().all())


def plan_from_record(record: PlanRecord) -> Plan28:
    return Plan28.model_validate(record.plan_json)
