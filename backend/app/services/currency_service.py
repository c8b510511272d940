"""
Registro de monedas.

Invariante: cada tenant tiene exactamente una moneda base (después del
bootstrap). La base tiene cotización implícita 1, no acepta cotizaciones
manuales y no puede desactivarse ni eliminarse.

Las funciones NO hacen commit; el router confirma una vez por operación.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import (
    BaseCurrencyImmutable,
    CannotDeactivateBase,
    DuplicateCode,
    InUse,
    InvalidTimestamp,
    InvalidValue,
    MissingRate,
    NotFound,
)
from app.core.serialization_helpers import to_decimal
from app.core.time_helpers import is_future, to_naive_utc, utc_now
from app.models.currency import Currency, CurrencyRate
from app.models.metal import Metal, MetalReferenceHistory
from app.models.quote import MetalQuote
from app.models.user import User
from app.services.rate_store import VALUE_QUANTUM, currency_rates, metal_references


logger = logging.getLogger(__name__)

BASE_RATE = Decimal("1")


@dataclass
class CurrencyView:
    """Moneda con su cotización vigente ya resuelta"""
    currency: Currency
    latest_rate: Optional[Decimal]
    latest_at: Optional[datetime]
    latest_created_at: Optional[datetime]


@dataclass
class BaseSwitchResult:
    previous_base: Optional[Currency]
    new_base: Currency
    factor: Decimal
    effective_at: datetime
    metals_recomputed: int
    changed: bool


def _normalize_code(code: Optional[str]) -> str:
    normalized = (code or "").strip().upper()
    if not normalized:
        raise InvalidValue("Código requerido")
    return normalized


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def get_currency(db: Session, tenant_id: int, currency_id: int) -> Currency:
    currency = db.query(Currency).filter(
        Currency.id == currency_id,
        Currency.tenant_id == tenant_id,
    ).first()
    if not currency:
        raise NotFound("Moneda no encontrada")
    return currency


def get_base_currency(db: Session, tenant_id: int) -> Optional[Currency]:
    return db.query(Currency).filter(
        Currency.tenant_id == tenant_id,
        Currency.is_base == True,  # noqa: E712
    ).first()


def _ensure_code_available(db: Session, tenant_id: int, code: str, exclude_id: Optional[int] = None) -> None:
    # Case-insensitive, across active and inactive rows
    query = db.query(Currency).filter(
        Currency.tenant_id == tenant_id,
        func.upper(Currency.code) == code,
    )
    if exclude_id is not None:
        query = query.filter(Currency.id != exclude_id)
    if query.first():
        raise DuplicateCode(f'Ya existe una moneda con código "{code}"')


def current_rate(db: Session, currency: Currency) -> Optional[Decimal]:
    """Cotización vigente en moneda base; la base siempre vale 1"""
    if currency.is_base:
        return BASE_RATE
    return currency_rates.current_value(db, currency.tenant_id, currency.id)


def describe_currency(db: Session, currency: Currency) -> CurrencyView:
    if currency.is_base:
        # Filas previas de la base quedan solo para auditoría
        return CurrencyView(currency, BASE_RATE, None, None)
    record = currency_rates.current_record(db, currency.tenant_id, currency.id)
    if record is None:
        return CurrencyView(currency, None, None, None)
    return CurrencyView(currency, Decimal(str(record.rate)), record.effective_at, record.created_at)


def list_currencies(db: Session, tenant_id: int) -> List[CurrencyView]:
    currencies = db.query(Currency).filter(Currency.tenant_id == tenant_id).all()
    currencies.sort(key=lambda c: (not c.is_base, not c.is_active, c.code))
    return [describe_currency(db, c) for c in currencies]


def create_currency(db: Session, tenant_id: int, code: str, name: str, symbol: str = "") -> Currency:
    normalized = _normalize_code(code)
    name = _clean(name)
    if not name:
        raise InvalidValue("Nombre requerido")
    _ensure_code_available(db, tenant_id, normalized)

    # The first currency of a tenant bootstraps the base
    is_first = get_base_currency(db, tenant_id) is None

    currency = Currency(
        tenant_id=tenant_id,
        code=normalized,
        name=name,
        symbol=_clean(symbol),
        is_base=is_first,
        is_active=True,
    )
    db.add(currency)
    db.flush()
    logger.info("currency created tenant=%s id=%s code=%s base=%s", tenant_id, currency.id, normalized, is_first)
    return currency


def update_currency(
    db: Session,
    tenant_id: int,
    currency_id: int,
    code: Optional[str] = None,
    name: Optional[str] = None,
    symbol: Optional[str] = None,
) -> Currency:
    currency = get_currency(db, tenant_id, currency_id)

    new_code = _normalize_code(code) if code is not None else None
    new_name = _clean(name) if name is not None else None
    if new_name is not None and not new_name:
        raise InvalidValue("Nombre requerido")
    if new_code is not None and new_code != currency.code:
        _ensure_code_available(db, tenant_id, new_code, exclude_id=currency.id)

    if new_code is not None:
        currency.code = new_code
    if new_name is not None:
        currency.name = new_name
    if symbol is not None:
        currency.symbol = _clean(symbol)
    db.flush()
    logger.info("currency updated tenant=%s id=%s code=%s name=%s", tenant_id, currency.id, currency.code, currency.name)
    return currency


def toggle_currency_active(db: Session, tenant_id: int, currency_id: int, is_active: bool) -> Currency:
    currency = get_currency(db, tenant_id, currency_id)
    if currency.is_base and not is_active:
        raise CannotDeactivateBase("La moneda base no puede desactivarse")
    currency.is_active = is_active
    db.flush()
    logger.info("currency active tenant=%s id=%s is_active=%s", tenant_id, currency.id, is_active)
    return currency


def delete_currency(db: Session, tenant_id: int, currency_id: int) -> None:
    currency = get_currency(db, tenant_id, currency_id)
    if currency.is_base:
        raise InUse("La moneda base no puede eliminarse")

    quotes = db.query(MetalQuote).filter(
        MetalQuote.tenant_id == tenant_id,
        MetalQuote.currency_id == currency.id,
    ).count()
    if quotes:
        raise InUse(f"La moneda tiene {quotes} cotizaciones de metal asociadas; desactivala en su lugar")

    # Rate rows are append-only audit history and are never orphaned
    if currency_rates.has_records(db, tenant_id, currency.id):
        raise InUse("La moneda tiene historial de tipo de cambio; desactivala en su lugar")

    db.delete(currency)
    db.flush()
    logger.info("currency deleted tenant=%s id=%s code=%s", tenant_id, currency_id, currency.code)


def add_rate(
    db: Session,
    tenant_id: int,
    currency_id: int,
    rate,
    effective_at: Optional[datetime] = None,
    actor: Optional[User] = None,
) -> CurrencyRate:
    currency = get_currency(db, tenant_id, currency_id)
    if currency.is_base:
        raise BaseCurrencyImmutable("La moneda base siempre vale 1 y no acepta cotizaciones")
    record = currency_rates.append(db, tenant_id, currency.id, rate, effective_at, actor)
    logger.info("currency rate tenant=%s id=%s rate=%s effective_at=%s", tenant_id, currency.id, record.rate, record.effective_at)
    return record


def list_rates(db: Session, tenant_id: int, currency_id: int, take: int) -> List[CurrencyRate]:
    currency = get_currency(db, tenant_id, currency_id)
    return currency_rates.history(db, tenant_id, currency.id, take)


def rate_history(db: Session, tenant_id: int, currency_id: int, take: int):
    """Retorna (vista con cotización vigente, historial más reciente primero)"""
    currency = get_currency(db, tenant_id, currency_id)
    return describe_currency(db, currency), currency_rates.history(db, tenant_id, currency.id, take)


def _latest_effective_at(db: Session, tenant_id: int, metal_ids: List[int], currency_ids: List[int]) -> Optional[datetime]:
    """Mayor effective_at entre las filas de historial que el cambio de base re-expresa"""
    candidates = []
    if metal_ids:
        candidates.append(
            db.query(func.max(MetalReferenceHistory.effective_at))
            .filter(MetalReferenceHistory.tenant_id == tenant_id, MetalReferenceHistory.metal_id.in_(metal_ids))
            .scalar()
        )
    if currency_ids:
        candidates.append(
            db.query(func.max(CurrencyRate.effective_at))
            .filter(CurrencyRate.tenant_id == tenant_id, CurrencyRate.currency_id.in_(currency_ids))
            .scalar()
        )
    candidates = [c for c in candidates if c is not None]
    return max(candidates) if candidates else None


def _rebase(value: Decimal, factor: Decimal) -> Decimal:
    return (to_decimal(value) / factor).quantize(VALUE_QUANTUM)


def set_base_currency(
    db: Session,
    tenant_id: int,
    currency_id: int,
    effective_at: Optional[datetime] = None,
    actor: Optional[User] = None,
) -> BaseSwitchResult:
    """
    Cambia la moneda base en una sola transacción:
    1. valida que la moneda exista y esté activa
    2. si ya es base, no hace nada
    3. baja la base anterior y marca la nueva
    4. recalcula el valor de referencia de cada metal (valor / r, donde r es
       la cotización de la nueva base expresada en la base anterior)
    5. agrega una fila de historial por metal, todas con el mismo effective_at
    Además re-expresa las cotizaciones del resto de las monedas en la nueva base.

    effective_at no puede ser anterior a ninguna fila que se re-expresa: las
    filas nuevas tienen que quedar como vigentes. Toda validación (incluidos
    los valores derivados) ocurre antes de la primera escritura.
    """
    target = get_currency(db, tenant_id, currency_id)
    if not target.is_active:
        raise InvalidValue("No se puede usar una moneda inactiva como base")

    effective = to_naive_utc(effective_at) if effective_at is not None else utc_now()
    if is_future(effective):
        raise InvalidTimestamp("La fecha de vigencia no puede estar en el futuro")

    previous = get_base_currency(db, tenant_id)
    if target.is_base:
        return BaseSwitchResult(previous, target, BASE_RATE, effective, 0, changed=False)

    if previous is None:
        factor = BASE_RATE
    else:
        factor = currency_rates.current_value(db, tenant_id, target.id)
        if factor is None:
            raise MissingRate(f"La moneda {target.code} no tiene tipo de cambio vigente para convertir los valores")

    # Serialize concurrent base switches / metal edits for this tenant
    metals = (
        db.query(Metal)
        .filter(Metal.tenant_id == tenant_id)
        .order_by(Metal.sort_order.asc(), Metal.id.asc())
        .with_for_update()
        .all()
    )
    others = db.query(Currency).filter(
        Currency.tenant_id == tenant_id,
        Currency.id != target.id,
        Currency.is_base == False,  # noqa: E712
    ).all()

    # Resolve and validate every derived value before writing anything
    metal_values = []
    for metal in metals:
        new_value = _rebase(metal.reference_value, factor)
        metal_references.validate(new_value)
        metal_values.append((metal, new_value))

    rate_rows = []
    if previous is not None:
        rate_rows.append((previous, _rebase(BASE_RATE, factor)))
        for currency in others:
            rate = currency_rates.current_value(db, tenant_id, currency.id)
            if rate is not None:
                rate_rows.append((currency, _rebase(rate, factor)))
    for currency, rate in rate_rows:
        if rate <= 0:
            raise InvalidValue(
                f"El tipo de cambio de {currency.code} en la nueva base es menor a la precisión admitida"
            )
        currency_rates.validate(rate)

    latest = _latest_effective_at(
        db,
        tenant_id,
        [m.id for m in metals],
        [c.id for c, _ in rate_rows],
    )
    if latest is not None and effective < latest:
        raise InvalidTimestamp(
            "La fecha de vigencia no puede ser anterior al último valor de referencia o tipo de cambio cargado"
        )

    if previous is not None:
        previous.is_base = False
        # The partial unique index allows only one base at a time
        db.flush()
    target.is_base = True
    db.flush()

    for metal, new_value in metal_values:
        metal_references.append(db, tenant_id, metal.id, new_value, effective, actor)
        metal.reference_value = new_value

    for currency, rate in rate_rows:
        currency_rates.append(db, tenant_id, currency.id, rate, effective, actor)

    db.flush()
    logger.info(
        "base currency switched tenant=%s from=%s to=%s factor=%s metals=%s rates=%s",
        tenant_id,
        previous.code if previous else None,
        target.code,
        factor,
        len(metals),
        len(rate_rows),
    )
    return BaseSwitchResult(previous, target, factor, effective, len(metals), changed=True)
