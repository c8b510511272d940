from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, UniqueConstraint, Index, text
from sqlalchemy.orm import relationship

from app.core.time_helpers import utc_now
from app.models.tenant import Base


class Currency(Base):
    __tablename__ = "currencies"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_currencies_tenant_code"),
        # At most one base currency per tenant
        Index(
            "uq_currencies_tenant_base",
            "tenant_id",
            unique=True,
            postgresql_where=text("is_base"),
            sqlite_where=text("is_base = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    code = Column(String(10), nullable=False)  # Always stored uppercase (ARS, USD)
    name = Column(String(100), nullable=False)
    symbol = Column(String(10), nullable=False, default="")
    is_base = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)


class CurrencyRate(Base):
    """Append-only: rows are never updated or deleted"""
    __tablename__ = "currency_rates"
    __table_args__ = (
        Index("ix_currency_rates_currency_effective", "currency_id", "effective_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    currency_id = Column(Integer, ForeignKey("currencies.id"), nullable=False, index=True)

    # Value of 1 unit of the currency expressed in the base currency
    rate = Column(Numeric(28, 12), nullable=False)

    effective_at = Column(DateTime, nullable=False, default=utc_now)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    currency = relationship("Currency")
    created_by = relationship("User")
