"""
Registro de metales: valor de referencia (en moneda base) y orden manual.

El valor de referencia vigente vive en Metal.reference_value y cada cambio
agrega una fila a MetalReferenceHistory (append-only).
"""
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import DuplicateName, DuplicateSymbol, InUse, InvalidValue, NotFound
from app.models.metal import Metal, MetalReferenceHistory
from app.models.user import User
from app.models.variant import MetalVariant
from app.services.rate_store import metal_references


logger = logging.getLogger(__name__)

MOVE_UP = "UP"
MOVE_DOWN = "DOWN"


def _clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidValue("Nombre requerido")
    return cleaned


def _clean_symbol(symbol: Optional[str]) -> Optional[str]:
    cleaned = (symbol or "").strip()
    return cleaned or None


def get_metal(db: Session, tenant_id: int, metal_id: int) -> Metal:
    metal = db.query(Metal).filter(Metal.id == metal_id, Metal.tenant_id == tenant_id).first()
    if not metal:
        raise NotFound("Metal no encontrado")
    return metal


def list_metals(db: Session, tenant_id: int, is_active: Optional[bool] = None) -> List[Metal]:
    query = db.query(Metal).filter(Metal.tenant_id == tenant_id)
    if is_active is not None:
        query = query.filter(Metal.is_active == is_active)
    return query.order_by(Metal.sort_order.asc(), Metal.id.asc()).all()


def _ensure_unique(
    db: Session,
    tenant_id: int,
    name: Optional[str],
    symbol: Optional[str],
    exclude_id: Optional[int] = None,
) -> None:
    base_query = db.query(Metal).filter(Metal.tenant_id == tenant_id)
    if exclude_id is not None:
        base_query = base_query.filter(Metal.id != exclude_id)

    if name is not None:
        if base_query.filter(func.lower(Metal.name) == name.lower()).first():
            raise DuplicateName(f'Ya existe un metal con nombre "{name}"')
    if symbol:
        if base_query.filter(func.lower(Metal.symbol) == symbol.lower()).first():
            raise DuplicateSymbol(f'Ya existe un metal con símbolo "{symbol}"')


def create_metal(
    db: Session,
    tenant_id: int,
    name: str,
    symbol: Optional[str] = None,
    reference_value=None,
    actor: Optional[User] = None,
) -> Metal:
    name = _clean_name(name)
    symbol = _clean_symbol(symbol)
    value = metal_references.validate(reference_value) if reference_value is not None else Decimal("0")
    _ensure_unique(db, tenant_id, name, symbol)

    max_order = db.query(func.max(Metal.sort_order)).filter(Metal.tenant_id == tenant_id).scalar()
    metal = Metal(
        tenant_id=tenant_id,
        name=name,
        symbol=symbol,
        reference_value=value,
        is_active=True,
        sort_order=(max_order or 0) + 1,
    )
    db.add(metal)
    db.flush()

    if reference_value is not None:
        metal_references.append(db, tenant_id, metal.id, value, actor=actor)

    logger.info("metal created tenant=%s id=%s name=%s reference_value=%s", tenant_id, metal.id, name, value)
    return metal


def update_metal(
    db: Session,
    tenant_id: int,
    metal_id: int,
    name: Optional[str] = None,
    symbol: Optional[str] = None,
    reference_value=None,
    actor: Optional[User] = None,
) -> Metal:
    metal = get_metal(db, tenant_id, metal_id)

    new_name = _clean_name(name) if name is not None else None
    new_symbol = _clean_symbol(symbol) if symbol is not None else None
    new_value = metal_references.validate(reference_value) if reference_value is not None else None
    _ensure_unique(db, tenant_id, new_name, new_symbol, exclude_id=metal.id)

    if new_name is not None:
        metal.name = new_name
    if symbol is not None:
        metal.symbol = new_symbol

    if new_value is not None and new_value != Decimal(str(metal.reference_value)):
        metal_references.append(db, tenant_id, metal.id, new_value, actor=actor)
        metal.reference_value = new_value
        logger.info("metal reference tenant=%s id=%s reference_value=%s", tenant_id, metal.id, new_value)

    db.flush()
    logger.info("metal updated tenant=%s id=%s name=%s symbol=%s", tenant_id, metal.id, metal.name, metal.symbol)
    return metal


def toggle_metal_active(db: Session, tenant_id: int, metal_id: int, is_active: bool) -> Metal:
    metal = get_metal(db, tenant_id, metal_id)
    metal.is_active = is_active
    db.flush()
    logger.info("metal active tenant=%s id=%s is_active=%s", tenant_id, metal.id, is_active)
    return metal


def delete_metal(db: Session, tenant_id: int, metal_id: int) -> None:
    metal = get_metal(db, tenant_id, metal_id)

    variants = db.query(MetalVariant).filter(
        MetalVariant.tenant_id == tenant_id,
        MetalVariant.metal_id == metal.id,
    ).count()
    if variants:
        raise InUse(f"El metal tiene {variants} variantes; desactivalo en su lugar")
    if metal_references.has_records(db, tenant_id, metal.id):
        raise InUse("El metal tiene historial de valor de referencia; desactivalo en su lugar")

    db.delete(metal)
    db.flush()
    logger.info("metal deleted tenant=%s id=%s", tenant_id, metal_id)


def move_metal(db: Session, tenant_id: int, metal_id: int, direction: str) -> bool:
    """
    Intercambia sort_order con el metal activo adyacente.
    Retorna False (sin error) si ya está en el extremo.
    """
    direction = (direction or "").strip().upper()
    if direction not in (MOVE_UP, MOVE_DOWN):
        raise InvalidValue("Dirección inválida; usar UP o DOWN")

    metal = get_metal(db, tenant_id, metal_id)
    query = db.query(Metal).filter(
        Metal.tenant_id == tenant_id,
        Metal.is_active == True,  # noqa: E712
        Metal.id != metal.id,
    )
    if direction == MOVE_UP:
        neighbor = (
            query.filter(Metal.sort_order < metal.sort_order)
            .order_by(Metal.sort_order.desc(), Metal.id.desc())
            .with_for_update()
            .first()
        )
    else:
        neighbor = (
            query.filter(Metal.sort_order > metal.sort_order)
            .order_by(Metal.sort_order.asc(), Metal.id.asc())
            .with_for_update()
            .first()
        )

    if neighbor is None:
        return False

    metal.sort_order, neighbor.sort_order = neighbor.sort_order, metal.sort_order
    db.flush()
    logger.info("metal moved tenant=%s id=%s dir=%s sort_order=%s", tenant_id, metal.id, direction, metal.sort_order)
    return True


def reference_history(db: Session, tenant_id: int, metal_id: int, take: int) -> Tuple[Metal, Optional[MetalReferenceHistory], List[MetalReferenceHistory]]:
    metal = get_metal(db, tenant_id, metal_id)
    current = metal_references.current_record(db, tenant_id, metal.id)
    history = metal_references.history(db, tenant_id, metal.id, take)
    return metal, current, history
