from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user, get_take, get_tenant, require_admin
from app.core.errors import DuplicateCode, valuation_transaction
from app.core.serialization_helpers import serialize_decimal
from app.models.currency import CurrencyRate
from app.models.tenant import Tenant
from app.models.user import User
from app.routes.common import ActiveToggle, UserRef, user_ref
from app.services import currency_service
from app.services.currency_service import CurrencyView

router = APIRouter()


class CurrencyCreate(BaseModel):
    code: str
    name: str
    symbol: str = ""


class CurrencyUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None


class CurrencyOut(BaseModel):
    id: int
    code: str
    name: str
    symbol: str
    is_base: bool
    is_active: bool
    latest_rate: Optional[float] = None
    latest_at: Optional[datetime] = None
    latest_created_at: Optional[datetime] = None


class RateCreate(BaseModel):
    rate: Decimal
    effective_at: Optional[datetime] = None


class RateOut(BaseModel):
    id: int
    currency_id: int
    rate: float
    effective_at: datetime
    created_at: datetime
    created_by: Optional[UserRef] = None


class CurrentRate(BaseModel):
    rate: float
    effective_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    is_implicit: bool = False


class CurrencyHistoryOut(BaseModel):
    currency: CurrencyOut
    current: Optional[CurrentRate] = None
    history: List[RateOut]


class SetBaseRequest(BaseModel):
    effective_at: Optional[datetime] = None


class SetBaseOut(BaseModel):
    changed: bool
    factor: float
    effective_at: datetime
    metals_recomputed: int
    previous_base_id: Optional[int] = None
    currency: CurrencyOut


def currency_out(view: CurrencyView) -> CurrencyOut:
    c = view.currency
    return CurrencyOut(
        id=c.id,
        code=c.code,
        name=c.name,
        symbol=c.symbol or "",
        is_base=c.is_base,
        is_active=c.is_active,
        latest_rate=serialize_decimal(view.latest_rate),
        latest_at=view.latest_at,
        latest_created_at=view.latest_created_at,
    )


def rate_out(record: CurrencyRate) -> RateOut:
    return RateOut(
        id=record.id,
        currency_id=record.currency_id,
        rate=serialize_decimal(record.rate),
        effective_at=record.effective_at,
        created_at=record.created_at,
        created_by=user_ref(record.created_by),
    )


@router.get("", response_model=List[CurrencyOut])
def list_currencies(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(get_current_user),
):
    """List currencies with their current rate (base first)"""
    return [currency_out(v) for v in currency_service.list_currencies(db, tenant.id)]


@router.post("", response_model=CurrencyOut)
def create_currency(
    data: CurrencyCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db, duplicate_error=DuplicateCode):
        currency = currency_service.create_currency(db, tenant.id, data.code, data.name, data.symbol)
    return currency_out(currency_service.describe_currency(db, currency))


@router.patch("/{currency_id}", response_model=CurrencyOut)
def update_currency(
    currency_id: int,
    data: CurrencyUpdate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db, duplicate_error=DuplicateCode):
        currency = currency_service.update_currency(
            db, tenant.id, currency_id, code=data.code, name=data.name, symbol=data.symbol
        )
    return currency_out(currency_service.describe_currency(db, currency))


@router.delete("/{currency_id}")
def delete_currency(
    currency_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db):
        currency_service.delete_currency(db, tenant.id, currency_id)
    return {"ok": True}


@router.patch("/{currency_id}/active", response_model=CurrencyOut)
def toggle_currency_active(
    currency_id: int,
    data: ActiveToggle,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db):
        currency = currency_service.toggle_currency_active(db, tenant.id, currency_id, data.is_active)
    return currency_out(currency_service.describe_currency(db, currency))


@router.post("/{currency_id}/set-base", response_model=SetBaseOut)
def set_base_currency(
    currency_id: int,
    data: Optional[SetBaseRequest] = Body(None),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    """Switch the base currency and recompute every metal reference value atomically"""
    effective_at = data.effective_at if data else None
    with valuation_transaction(db):
        result = currency_service.set_base_currency(db, tenant.id, currency_id, effective_at, actor=current_user)
    return SetBaseOut(
        changed=result.changed,
        factor=serialize_decimal(result.factor),
        effective_at=result.effective_at,
        metals_recomputed=result.metals_recomputed,
        previous_base_id=result.previous_base.id if result.previous_base else None,
        currency=currency_out(currency_service.describe_currency(db, result.new_base)),
    )


@router.post("/{currency_id}/rates", response_model=RateOut)
def add_currency_rate(
    currency_id: int,
    data: RateCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db):
        record = currency_service.add_rate(db, tenant.id, currency_id, data.rate, data.effective_at, actor=current_user)
    return rate_out(record)


@router.get("/{currency_id}/rates", response_model=List[RateOut])
def list_currency_rates(
    currency_id: int,
    take: int = Depends(get_take),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(get_current_user),
):
    with valuation_transaction(db, commit=False):
        records = currency_service.list_rates(db, tenant.id, currency_id, take)
    return [rate_out(r) for r in records]


@router.get("/{currency_id}/history", response_model=CurrencyHistoryOut)
def currency_rate_history(
    currency_id: int,
    take: int = Depends(get_take),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(get_current_user),
):
    with valuation_transaction(db, commit=False):
        view, records = currency_service.rate_history(db, tenant.id, currency_id, take)

    current = None
    if view.latest_rate is not None:
        current = CurrentRate(
            rate=serialize_decimal(view.latest_rate),
            effective_at=view.latest_at,
            created_at=view.latest_created_at,
            is_implicit=view.currency.is_base,
        )
    return CurrencyHistoryOut(
        currency=currency_out(view),
        current=current,
        history=[rate_out(r) for r in records],
    )
