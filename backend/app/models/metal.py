from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from app.core.time_helpers import utc_now
from app.models.tenant import Base


class Metal(Base):
    __tablename__ = "metals"
    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_metals_tenant_name"),
        # NULL symbols do not collide, so only non-empty symbols are unique
        UniqueConstraint("tenant_id", "symbol", name="uq_metals_tenant_symbol"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    symbol = Column(String(20), nullable=True)

    # Value per gram of pure metal in the base currency.
    # Projection of the latest MetalReferenceHistory row.
    reference_value = Column(Numeric(28, 12), nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0, index=True)

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    variants = relationship("MetalVariant", back_populates="metal")


class MetalReferenceHistory(Base):
    """Append-only: rows are never updated or deleted"""
    __tablename__ = "metal_reference_history"
    __table_args__ = (
        Index("ix_metal_reference_history_metal_effective", "metal_id", "effective_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    metal_id = Column(Integer, ForeignKey("metals.id"), nullable=False, index=True)

    reference_value = Column(Numeric(28, 12), nullable=False)

    effective_at = Column(DateTime, nullable=False, default=utc_now)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    metal = relationship("Metal")
    created_by = relationship("User")
