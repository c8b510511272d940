"""
Cotizaciones manuales por variante y moneda (append-only).
La última por (variante, moneda) es la que se muestra.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import InvalidTimestamp, InvalidValue, NotFound
from app.core.time_helpers import is_future, to_naive_utc, utc_now
from app.models.currency import Currency
from app.models.quote import MetalQuote
from app.models.user import User
from app.services.variant_pricing import get_variant, validate_override


logger = logging.getLogger(__name__)

SALE_BELOW_PURCHASE = "SALE_BELOW_PURCHASE"


@dataclass
class QuoteResult:
    quote: MetalQuote
    warnings: List[str] = field(default_factory=list)


def add_quote(
    db: Session,
    tenant_id: int,
    variant_id: int,
    currency_id: int,
    purchase_price,
    sale_price,
    effective_at: Optional[datetime] = None,
    actor: Optional[User] = None,
) -> QuoteResult:
    variant = get_variant(db, tenant_id, variant_id)
    if not variant.is_active:
        raise InvalidValue("La variante está inactiva")

    currency = db.query(Currency).filter(
        Currency.id == currency_id,
        Currency.tenant_id == tenant_id,
    ).first()
    if not currency:
        raise NotFound("Moneda no encontrada")
    if not currency.is_active:
        raise InvalidValue("La moneda está inactiva")

    if purchase_price is None or sale_price is None:
        raise InvalidValue("Precio de compra y de venta son requeridos")
    purchase = validate_override(purchase_price, "Precio de compra")
    sale = validate_override(sale_price, "Precio de venta")
    if effective_at is not None and is_future(effective_at):
        raise InvalidTimestamp("La fecha de vigencia no puede estar en el futuro")

    now = utc_now()
    quote = MetalQuote(
        tenant_id=tenant_id,
        variant_id=variant.id,
        currency_id=currency.id,
        purchase_price=purchase,
        sale_price=sale,
        effective_at=to_naive_utc(effective_at) if effective_at is not None else now,
        created_at=now,
        created_by_id=actor.id if actor is not None else None,
    )
    db.add(quote)
    db.flush()

    warnings = []
    if sale < purchase:
        # Soft rule: surfaced to the operator, never enforced
        warnings.append(SALE_BELOW_PURCHASE)
        logger.warning("quote sale below purchase tenant=%s variant=%s currency=%s", tenant_id, variant.id, currency.code)

    logger.info("quote added tenant=%s variant=%s currency=%s purchase=%s sale=%s", tenant_id, variant.id, currency.code, purchase, sale)
    return QuoteResult(quote=quote, warnings=warnings)


def list_quotes(db: Session, tenant_id: int, variant_id: int, take: int) -> List[MetalQuote]:
    variant = get_variant(db, tenant_id, variant_id)
    return (
        db.query(MetalQuote)
        .filter(MetalQuote.tenant_id == tenant_id, MetalQuote.variant_id == variant.id)
        .order_by(MetalQuote.effective_at.desc(), MetalQuote.created_at.desc(), MetalQuote.id.desc())
        .limit(take)
        .all()
    )


def latest_quote(db: Session, tenant_id: int, variant_id: int, currency_id: int) -> Optional[MetalQuote]:
    return (
        db.query(MetalQuote)
        .filter(
            MetalQuote.tenant_id == tenant_id,
            MetalQuote.variant_id == variant_id,
            MetalQuote.currency_id == currency_id,
            MetalQuote.effective_at <= utc_now(),
        )
        .order_by(MetalQuote.effective_at.desc(), MetalQuote.created_at.desc(), MetalQuote.id.desc())
        .first()
    )
