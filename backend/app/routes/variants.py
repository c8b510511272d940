from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user, get_take, get_tenant, require_admin
from app.core.errors import DuplicateSku, valuation_transaction
from app.core.serialization_helpers import serialize_decimal
from app.models.quote import MetalQuote
from app.models.tenant import Tenant
from app.models.user import User
from app.models.variant import MetalVariant, PricingMode
from app.routes.common import ActiveToggle
from app.routes.quotes import QuoteOut, quote_out
from app.services import favorite_service, quote_service, variant_pricing
from app.services.variant_pricing import VariantPrices

router = APIRouter()


class VariantCreate(BaseModel):
    metal_id: int
    name: str
    sku: str
    purity: Decimal
    buy_factor: Optional[Decimal] = None
    sale_factor: Optional[Decimal] = None
    purchase_price_override: Optional[Decimal] = None
    sale_price_override: Optional[Decimal] = None
    pricing_mode: Optional[PricingMode] = None


class VariantUpdate(BaseModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    purity: Optional[Decimal] = None
    sale_factor: Optional[Decimal] = None
    sale_price_override: Optional[Decimal] = None


class VariantPricingPatch(BaseModel):
    buy_factor: Optional[Decimal] = None
    sale_factor: Optional[Decimal] = None
    purchase_price_override: Optional[Decimal] = None
    sale_price_override: Optional[Decimal] = None
    clear_purchase_override: bool = False
    clear_sale_override: bool = False
    pricing_mode: Optional[PricingMode] = None


class VariantOut(BaseModel):
    id: int
    metal_id: int
    name: str
    sku: str
    purity: float
    is_active: bool
    is_favorite: bool
    pricing_mode: str
    buy_factor: float
    sale_factor: float
    purchase_price_override: Optional[float] = None
    sale_price_override: Optional[float] = None
    reference_value: float
    suggested_price: float
    final_purchase_price: float
    final_sale_price: float
    latest_quote: Optional[QuoteOut] = None
    updated_at: Optional[datetime] = None


def variant_out(variant: MetalVariant, prices: Optional[VariantPrices] = None, quote: Optional[MetalQuote] = None) -> VariantOut:
    if prices is None:
        prices = variant_pricing.compute_prices(variant)
    return VariantOut(
        id=variant.id,
        metal_id=variant.metal_id,
        name=variant.name,
        sku=variant.sku,
        purity=serialize_decimal(variant.purity),
        is_active=variant.is_active,
        is_favorite=variant.is_favorite,
        pricing_mode=variant.pricing_mode,
        buy_factor=serialize_decimal(variant.buy_factor),
        sale_factor=serialize_decimal(variant.sale_factor),
        purchase_price_override=serialize_decimal(variant.purchase_price_override),
        sale_price_override=serialize_decimal(variant.sale_price_override),
        reference_value=serialize_decimal(prices.reference_value),
        suggested_price=serialize_decimal(prices.suggested_price),
        final_purchase_price=serialize_decimal(prices.final_purchase_price),
        final_sale_price=serialize_decimal(prices.final_sale_price),
        latest_quote=quote_out(quote) if quote is not None else None,
        updated_at=variant.updated_at,
    )


@router.post("", response_model=VariantOut)
def create_variant(
    data: VariantCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db, duplicate_error=DuplicateSku):
        variant = variant_pricing.create_variant(db, tenant.id, data.metal_id, data.model_dump(exclude={"metal_id"}))
    return variant_out(variant)


@router.get("/{variant_id}", response_model=VariantOut)
def get_variant(
    variant_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(get_current_user),
):
    with valuation_transaction(db, commit=False):
        variant = variant_pricing.get_variant(db, tenant.id, variant_id)
    return variant_out(variant)


@router.patch("/{variant_id}", response_model=VariantOut)
def update_variant(
    variant_id: int,
    data: VariantUpdate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db, duplicate_error=DuplicateSku):
        variant = variant_pricing.update_variant(db, tenant.id, variant_id, data.model_dump(exclude_unset=True))
    return variant_out(variant)


@router.patch("/{variant_id}/pricing", response_model=VariantOut)
def update_variant_pricing(
    variant_id: int,
    data: VariantPricingPatch,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    """Update factors / overrides / mode; omitted fields are left untouched"""
    with valuation_transaction(db):
        variant = variant_pricing.update_pricing(db, tenant.id, variant_id, data.model_dump(exclude_unset=True))
    return variant_out(variant)


@router.patch("/{variant_id}/active", response_model=VariantOut)
def toggle_variant_active(
    variant_id: int,
    data: ActiveToggle,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db):
        variant = variant_pricing.toggle_variant_active(db, tenant.id, variant_id, data.is_active)
    return variant_out(variant)


@router.delete("/{variant_id}")
def delete_variant(
    variant_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db):
        variant_pricing.delete_variant(db, tenant.id, variant_id)
    return {"ok": True}


@router.post("/{variant_id}/set-favorite", response_model=VariantOut)
def set_favorite_variant(
    variant_id: int,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    with valuation_transaction(db):
        variant = favorite_service.set_favorite(db, tenant.id, variant_id)
    return variant_out(variant)


@router.get("/{variant_id}/quotes", response_model=List[QuoteOut])
def list_variant_quotes(
    variant_id: int,
    take: int = Depends(get_take),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(get_current_user),
):
    with valuation_transaction(db, commit=False):
        quotes = quote_service.list_quotes(db, tenant.id, variant_id, take)
    return [quote_out(q) for q in quotes]
