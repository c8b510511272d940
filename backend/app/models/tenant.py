from sqlalchemy import Column, Integer, String, UniqueConstraint, Boolean, DateTime
from sqlalchemy.orm import declarative_base

from app.core.time_helpers import utc_now


Base = declarative_base()


class Tenant(Base):
    """A jewelry shop; every valuation row is scoped to one tenant"""
    __tablename__ = "tenants"
    __table_args__ = (UniqueConstraint("slug", name="uq_tenant_slug"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
