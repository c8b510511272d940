from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user, get_take, get_tenant, require_admin
from app.core.errors import DuplicateName, valuation_transaction
from app.core.serialization_helpers import serialize_decimal
from app.models.metal import Metal, MetalReferenceHistory
from app.models.tenant import Tenant
from app.models.user import User
from app.routes.common import ActiveToggle, UserRef, user_ref
from app.routes.variants import VariantOut, variant_out
from app.services import favorite_service, metal_service, quote_service, variant_pricing

router = APIRouter()


class MetalCreate(BaseModel):
    name: str
    symbol: Optional[str] = None
    reference_value: Optional[Decimal] = None


class MetalUpdate(BaseModel):
    name: Optional[str] = None
    symbol: Optional[str] = None
    reference_value: Optional[Decimal] = None


class MetalOut(BaseModel):
    id: int
    name: str
    symbol: str
    reference_value: float
    is_active: bool
    sort_order: int


class MoveRequest(BaseModel):
    direction: str = Field(alias="dir")

    model_config = ConfigDict(populate_by_name=True)


class MoveOut(BaseModel):
    changed: bool
    rows: List[MetalOut]


class RefHistoryItem(BaseModel):
    id: int
    reference_value: float
    effective_at: datetime
    created_at: datetime
    user: Optional[UserRef] = None


class RefHistoryOut(BaseModel):
    metal: MetalOut
    current: Optional[RefHistoryItem] = None
    history: List[RefHistoryItem]


def metal_out(metal: Metal) -> MetalOut:
    return MetalOut(
        id=metal.id,
        name=metal.name,
        symbol=metal.symbol or "",
        reference_value=serialize_decimal(metal.reference_value),
        is_active=metal.is_active,
        sort_order=metal.sort_order,
    )


def ref_item(record: Optional[MetalReferenceHistory]) -> Optional[RefHistoryItem]:
    if record is None:
        return None
    return RefHistoryItem(
        id=record.id,
        reference_value=serialize_decimal(record.reference_value),
        effective_at=record.effective_at,
        created_at=record.created_at,
        user=user_ref(record.created_by),
    )


@router.get("", response_model=List[MetalOut])
def list_metals(
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(get_current_user),
):
    """List metals in display order"""
    return [metal_out(m) for m in metal_service.list_metals(db, tenant.id, is_active)]


@router.get("/{metal_id}", response_model=MetalOut)
def get_metal(
    metal_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(get_current_user),
):
    with valuation_transaction(db, commit=False):
        metal = metal_service.get_metal(db, tenant.id, metal_id)
    return metal_out(metal)


@router.post("", response_model=MetalOut)
def create_metal(
    data: MetalCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db, duplicate_error=DuplicateName):
        metal = metal_service.create_metal(
            db, tenant.id, data.name, data.symbol, data.reference_value, actor=current_user
        )
    return metal_out(metal)


@router.patch("/{metal_id}", response_model=MetalOut)
def update_metal(
    metal_id: int,
    data: MetalUpdate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db, duplicate_error=DuplicateName):
        metal = metal_service.update_metal(
            db,
            tenant.id,
            metal_id,
            name=data.name,
            symbol=data.symbol,
            reference_value=data.reference_value,
            actor=current_user,
        )
    return metal_out(metal)


@router.delete("/{metal_id}")
def delete_metal(
    metal_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db):
        metal_service.delete_metal(db, tenant.id, metal_id)
    return {"ok": True}


@router.patch("/{metal_id}/active", response_model=MetalOut)
def toggle_metal_active(
    metal_id: int,
    data: ActiveToggle,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db):
        metal = metal_service.toggle_metal_active(db, tenant.id, metal_id, data.is_active)
    return metal_out(metal)


@router.post("/{metal_id}/move", response_model=MoveOut)
def move_metal(
    metal_id: int,
    data: MoveRequest,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    """Swap display order with the adjacent active metal"""
    with valuation_transaction(db):
        changed = metal_service.move_metal(db, tenant.id, metal_id, data.direction)
    return MoveOut(changed=changed, rows=[metal_out(m) for m in metal_service.list_metals(db, tenant.id)])


@router.get("/{metal_id}/ref-history", response_model=RefHistoryOut)
def metal_ref_history(
    metal_id: int,
    take: int = Depends(get_take),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(get_current_user),
):
    with valuation_transaction(db, commit=False):
        metal, current, history = metal_service.reference_history(db, tenant.id, metal_id, take)
    return RefHistoryOut(
        metal=metal_out(metal),
        current=ref_item(current),
        history=[ref_item(r) for r in history],
    )


@router.get("/{metal_id}/variants", response_model=List[VariantOut])
def list_metal_variants(
    metal_id: int,
    q: Optional[str] = Query(None, description="Search by name or SKU"),
    is_active: Optional[bool] = Query(None),
    only_favorites: bool = Query(False),
    min_purchase: Optional[Decimal] = Query(None),
    max_purchase: Optional[Decimal] = Query(None),
    min_sale: Optional[Decimal] = Query(None),
    max_sale: Optional[Decimal] = Query(None),
    currency_id: Optional[int] = Query(None, description="Attach the latest quote in this currency"),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(get_current_user),
):
    with valuation_transaction(db, commit=False):
        rows = variant_pricing.list_variants(
            db,
            tenant.id,
            metal_id,
            q=q,
            is_active=is_active,
            only_favorites=only_favorites,
            min_purchase=min_purchase,
            max_purchase=max_purchase,
            min_sale=min_sale,
            max_sale=max_sale,
        )
    result = []
    for variant, prices in rows:
        quote = None
        if currency_id is not None:
            quote = quote_service.latest_quote(db, tenant.id, variant.id, currency_id)
        result.append(variant_out(variant, prices, quote))
    return result


@router.post("/{metal_id}/clear-favorite")
def clear_favorite(
    metal_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db):
        cleared = favorite_service.clear_favorite(db, tenant.id, metal_id)
    return {"ok": True, "cleared": cleared}
