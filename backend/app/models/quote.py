from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from app.core.time_helpers import utc_now
from app.models.tenant import Base


class MetalQuote(Base):
    """Manually entered price point of a variant in a given currency. Append-only."""
    __tablename__ = "metal_quotes"
    __table_args__ = (
        Index("ix_metal_quotes_variant_currency_effective", "variant_id", "currency_id", "effective_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    variant_id = Column(Integer, ForeignKey("metal_variants.id"), nullable=False, index=True)
    currency_id = Column(Integer, ForeignKey("currencies.id"), nullable=False, index=True)

    purchase_price = Column(Numeric(18, 2), nullable=False)
    sale_price = Column(Numeric(18, 2), nullable=False)

    effective_at = Column(DateTime, nullable=False, default=utc_now)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    variant = relationship("MetalVariant")
    currency = relationship("Currency")
