from enum import Enum

from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, UniqueConstraint, Index, text
from sqlalchemy.orm import relationship

from app.core.time_helpers import utc_now
from app.models.tenant import Base


class PricingMode(str, Enum):
    auto = "AUTO"
    override = "OVERRIDE"


class MetalVariant(Base):
    """Purity-differentiated SKU of a metal (e.g. Oro 18k = 0.75)"""
    __tablename__ = "metal_variants"
    __table_args__ = (
        UniqueConstraint("tenant_id", "sku", name="uq_metal_variants_tenant_sku"),
        # At most one favorite variant per metal
        Index(
            "uq_metal_variants_favorite",
            "metal_id",
            unique=True,
            postgresql_where=text("is_favorite"),
            sqlite_where=text("is_favorite = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    metal_id = Column(Integer, ForeignKey("metals.id"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    sku = Column(String(100), nullable=False, index=True)
    purity = Column(Numeric(6, 4), nullable=False)  # (0, 1]

    is_active = Column(Boolean, nullable=False, default=True)
    is_favorite = Column(Boolean, nullable=False, default=False)

    pricing_mode = Column(String(10), nullable=False, default=PricingMode.auto.value)
    buy_factor = Column(Numeric(10, 4), nullable=False, default=1)
    sale_factor = Column(Numeric(10, 4), nullable=False, default=1)
    # Only used while pricing_mode == OVERRIDE; may be kept stale in AUTO
    purchase_price_override = Column(Numeric(18, 2), nullable=True)
    sale_price_override = Column(Numeric(18, 2), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    metal = relationship("Metal", back_populates="variants")
