"""
SQLAlchemy models — two tables only.

`plans`                — one generated Plan28 per (profile id, profile version), stored as JSON
`product_replacements` — audit trail of user-initiated product swaps
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from skinplan.database import Base


class PlanRecord(Base):
    __tablename__ = "plans"
    __table_args__ = (UniqueConstraint("profile_id", "profile_version", name="uq_plans_profile_version"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    profile_id = Column(String(64), nullable=False, index=True)
    profile_version = Column(Integer, nullable=False)
    user_id = Column(String(64), index=True)
    rule_id = Column(Integer, nullable=False)
    plan_json = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    replacements = relationship("ProductReplacement", back_populates="plan", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<PlanRecord(id={self.id}, profile={self.profile_id} v{self.profile_version})>"


class ProductReplacement(Base):
    __tablename__ = "product_replacements"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    plan_id = Column(Integer, ForeignKey("plans.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64))
    old_product_id = Column(Integer, nullable=False)
    new_product_id = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    plan = relationship("PlanRecord", back_populates="replacements")

    def __repr__(self):
        return f"<ProductReplacement(plan={self.plan_id}, {self.old_product_id} -> {self.new_product_id})>"
