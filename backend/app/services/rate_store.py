"""
Historial append-only de valores con fecha de vigencia.

Sirve a dos tipos de entidad:
- cotizaciones de moneda (CurrencyRate, valor > 0)
- valores de referencia de metales (MetalReferenceHistory, valor >= 0)

Las filas nunca se actualizan ni se borran. El valor "actual" es una
proyección: la fila con mayor effective_at <= ahora; ante empate en
effective_at gana la insertada después (created_at, luego id).
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import InvalidTimestamp, InvalidValue
from app.core.serialization_helpers import fits_scale, to_decimal
from app.core.time_helpers import is_future, to_naive_utc, utc_now
from app.models.currency import CurrencyRate
from app.models.metal import MetalReferenceHistory
from app.models.user import User


logger = logging.getLogger(__name__)

# Scale of CurrencyRate.rate and the reference_value columns
VALUE_QUANTUM = Decimal("0.000000000001")


class RateStore:
    def __init__(self, model, entity_column: str, value_column: str, allow_zero: bool, label: str):
        self.model = model
        self.entity_column = entity_column
        self.value_column = value_column
        self.allow_zero = allow_zero
        self.label = label

    def _entity_attr(self):
        return getattr(self.model, self.entity_column)

    def _ordered(self, db: Session, tenant_id: int, entity_id: int):
        return (
            db.query(self.model)
            .filter(self.model.tenant_id == tenant_id, self._entity_attr() == entity_id)
            .order_by(
                self.model.effective_at.desc(),
                self.model.created_at.desc(),
                self.model.id.desc(),
            )
        )

    def validate(self, value, effective_at: Optional[datetime] = None) -> Decimal:
        """Valida sin escribir nada; retorna el valor como Decimal"""
        try:
            amount = to_decimal(value)
        except (ArithmeticError, ValueError, TypeError):
            raise InvalidValue(f"Valor inválido para {self.label}: {value!r}")
        if not amount.is_finite():
            raise InvalidValue(f"Valor inválido para {self.label}: {value!r}")
        if self.allow_zero and amount < 0:
            raise InvalidValue(f"El {self.label} no puede ser negativo")
        if not self.allow_zero and amount <= 0:
            raise InvalidValue(f"El {self.label} debe ser mayor a 0")
        if not fits_scale(amount, VALUE_QUANTUM):
            raise InvalidValue(f"El {self.label} admite hasta 12 decimales")
        if effective_at is not None and is_future(effective_at):
            raise InvalidTimestamp("La fecha de vigencia no puede estar en el futuro")
        return amount

    def append(
        self,
        db: Session,
        tenant_id: int,
        entity_id: int,
        value,
        effective_at: Optional[datetime] = None,
        actor: Optional[User] = None,
    ):
        """
        Agrega una fila al historial.
        effective_at por defecto es ahora; puede ser retroactiva pero no futura.
        NO hace commit - el caller decide el límite de la transacción.
        """
        amount = self.validate(value, effective_at)
        now = utc_now()
        record = self.model(
            tenant_id=tenant_id,
            effective_at=to_naive_utc(effective_at) if effective_at is not None else now,
            created_at=now,
            created_by_id=actor.id if actor is not None else None,
        )
        setattr(record, self.entity_column, entity_id)
        setattr(record, self.value_column, amount)
        db.add(record)
        db.flush()
        logger.debug("%s appended entity=%s value=%s effective_at=%s", self.label, entity_id, amount, record.effective_at)
        return record

    def record_as_of(self, db: Session, tenant_id: int, entity_id: int, at: datetime):
        return (
            self._ordered(db, tenant_id, entity_id)
            .filter(self.model.effective_at <= to_naive_utc(at))
            .first()
        )

    def current_record(self, db: Session, tenant_id: int, entity_id: int):
        return self.record_as_of(db, tenant_id, entity_id, utc_now())

    def value_as_of(self, db: Session, tenant_id: int, entity_id: int, at: datetime) -> Optional[Decimal]:
        record = self.record_as_of(db, tenant_id, entity_id, at)
        if record is None:
            return None
        return to_decimal(getattr(record, self.value_column))

    def current_value(self, db: Session, tenant_id: int, entity_id: int) -> Optional[Decimal]:
        """None si no hay filas; el caller elige el fallback (p.ej. 1 para la moneda base)"""
        return self.value_as_of(db, tenant_id, entity_id, utc_now())

    def history(self, db: Session, tenant_id: int, entity_id: int, limit: int) -> List:
        """Snapshot al momento de la llamada, más reciente primero"""
        return self._ordered(db, tenant_id, entity_id).limit(limit).all()

    def has_records(self, db: Session, tenant_id: int, entity_id: int) -> bool:
        return self._ordered(db, tenant_id, entity_id).first() is not None


currency_rates = RateStore(
    CurrencyRate,
    entity_column="currency_id",
    value_column="rate",
    allow_zero=False,
    label="tipo de cambio",
)

metal_references = RateStore(
    MetalReferenceHistory,
    entity_column="metal_id",
    value_column="reference_value",
    allow_zero=True,
    label="valor de referencia",
)
