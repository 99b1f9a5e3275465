"""
PlanService — calling layer around the pure plan engine.

Owns per-profile idempotency (one stored plan per profile version) and the
replace-product flow: validate the target product, apply the pure transform,
persist, and record the swap.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from skinplan.catalog import CatalogSnapshot
from skinplan.errors import PlanNotFoundError, UnknownProductError
from skinplan.models.db import PlanRecord
from skinplan.repository import PlanRepository, plan_from_record
from skinplan.schemas import Plan28, SkinProfile
from skinplan.services.plan_assembler import generate_plan
from skinplan.services.plan_transforms import replace_product
from skinplan.services.plan_validation import validate_plan
from skinplan.services.step_resolver import MAX_ALTERNATES

logger = logging.getLogger(__name__)


class PlanService:

    def __init__(
        self,
        snapshot: CatalogSnapshot,
        repo: Optional[PlanRepository] = None,
        max_alternates: int = MAX_ALTERNATES,
    ):
        self.snapshot = snapshot
        self.repo = repo or PlanRepository()
        self.max_alternates = max_alternates

    async def get_or_generate(self, db: AsyncSession, profile: SkinProfile) -> Plan28:
        """Return the stored plan for this profile version, generating it once."""
        existing = await self.repo.get_for_profile(db, profile.id, profile.version)
        if existing is not None:
            logger.info(f"Plan for profile {profile.id} v{profile.version} already exists, returning stored copy")
            return plan_from_record(existing)

        plan = generate_plan(
            profile,
            self.snapshot.rules,
            self.snapshot.products,
            max_alternates=self.max_alternates,
        )

        validation = validate_plan(plan, self.snapshot.products)
        if validation.warnings:
            logger.warning(f"Plan for profile {profile.id} v{profile.version} has warnings: {validation.warnings}")

        try:
            await self.repo.save_plan(db, plan)
        except IntegrityError:
            # Another request stored this version first
            await db.rollback()
            existing = await self.repo.get_for_profile(db, profile.id, profile.version)
            if existing is None:
                raise
            logger.info(f"Concurrent generation for profile {profile.id} v{profile.version}, using stored plan")
            return plan_from_record(existing)

        return plan

    async def _require_record(
        self,
        db: AsyncSession,
        profile_id: str,
        profile_version: Optional[int],
    ) -> PlanRecord:
        record = await self.repo.get_for_profile(db, profile_id, profile_version)
        if record is None:
            version = f" v{profile_version}" if profile_version is not None else ""
            raise PlanNotFoundError(f"No plan stored for profile {profile_id}{version}")
        return record

    async def get_plan(
        self,
        db: AsyncSession,
        profile_id: str,
        profile_version: Optional[int] = None,
    ) -> Plan28:
        record = await self._require_record(db, profile_id, profile_version)
        return plan_from_record(record)

    async def replace_product(
        self,
        db: AsyncSession,
        profile_id: str,
        old_product_id: int,
        new_product_id: int,
        profile_version: Optional[int] = None,
    ) -> Plan28:
        if self.snapshot.published_product(new_product_id) is None:
            raise UnknownProductError(new_product_id)

        record = await self._require_record(db, profile_id, profile_version)
        plan = plan_from_record(record)
        if old_product_id not in plan.product_ids():
            raise UnknownProductError(old_product_id)

        updated = replace_product(plan, old_product_id, new_product_id)
        plan_id = record.id

        # Plan update and audit row land in one commit
        try:
            await self.repo.update_plan(db, record, updated, commit=False)
            await self.repo.log_replacement(
                db,
                plan_id=plan_id,
                old_product_id=old_product_id,
                new_product_id=new_product_id,
                user_id=plan.user_id,
                commit=False,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            logger.error(f"Replacing product {old_product_id} in plan {plan_id} failed, rolled back", exc_info=True)
            raise

        logger.info(
            f"Replaced product {old_product_id} -> {new_product_id} in plan {plan_id} "
            f"(profile {profile_id} v{plan.profile_version})"
        )
        return updated
