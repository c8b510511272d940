from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_tenant, require_admin
from app.core.errors import valuation_transaction
from app.core.serialization_helpers import serialize_decimal
from app.models.quote import MetalQuote
from app.models.tenant import Tenant
from app.models.user import User
from app.services import quote_service

router = APIRouter()


class QuoteCreate(BaseModel):
    variant_id: int
    currency_id: int
    purchase_price: Decimal
    sale_price: Decimal
    effective_at: Optional[datetime] = None


class QuoteCurrency(BaseModel):
    id: int
    code: str
    symbol: str


class QuoteOut(BaseModel):
    id: int
    variant_id: int
    currency_id: int
    purchase_price: float
    sale_price: float
    effective_at: datetime
    created_at: datetime
    currency: Optional[QuoteCurrency] = None


class QuoteCreateOut(BaseModel):
    quote: QuoteOut
    warnings: List[str] = []


def quote_out(quote: MetalQuote) -> QuoteOut:
    currency = None
    if quote.currency is not None:
        currency = QuoteCurrency(id=quote.currency.id, code=quote.currency.code, symbol=quote.currency.symbol or "")
    return QuoteOut(
        id=quote.id,
        variant_id=quote.variant_id,
        currency_id=quote.currency_id,
        purchase_price=serialize_decimal(quote.purchase_price),
        sale_price=serialize_decimal(quote.sale_price),
        effective_at=quote.effective_at,
        created_at=quote.created_at,
        currency=currency,
    )


@router.post("", response_model=QuoteCreateOut)
def add_quote(
    data: QuoteCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_tenant),
    current_user: User = Depends(require_admin),
):
    """Record a manual price point; sale below purchase is reported as a warning"""
    with valuation_transaction(db):
        result = quote_service.add_quote(
            db,
            tenant.id,
            data.variant_id,
            data.currency_id,
            data.purchase_price,
            data.sale_price,
            data.effective_at,
            actor=current_user,
        )
    return QuoteCreateOut(quote=quote_out(result.quote), warnings=result.warnings)
