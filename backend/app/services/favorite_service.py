"""
Variante favorita por metal: un único lugar, no una lista de toggles.

set_favorite limpia y marca dentro de la misma transacción, con el metal
bloqueado, así nunca quedan dos favoritas ni se pierde la anterior a medias.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import InvalidValue, NotFound
from app.models.metal import Metal
from app.models.variant import MetalVariant
from app.services.variant_pricing import get_variant


logger = logging.getLogger(__name__)


def _lock_metal(db: Session, tenant_id: int, metal_id: int) -> Metal:
    metal = (
        db.query(Metal)
        .filter(Metal.id == metal_id, Metal.tenant_id == tenant_id)
        .with_for_update()
        .first()
    )
    if not metal:
        raise NotFound("Metal no encontrado")
    return metal


def _clear_others(db: Session, tenant_id: int, metal_id: int, keep_id: Optional[int] = None) -> int:
    query = db.query(MetalVariant).filter(
        MetalVariant.tenant_id == tenant_id,
        MetalVariant.metal_id == metal_id,
        MetalVariant.is_favorite == True,  # noqa: E712
    )
    if keep_id is not None:
        query = query.filter(MetalVariant.id != keep_id)
    return query.update({MetalVariant.is_favorite: False}, synchronize_session="fetch")


def get_favorite(db: Session, tenant_id: int, metal_id: int) -> Optional[MetalVariant]:
    return db.query(MetalVariant).filter(
        MetalVariant.tenant_id == tenant_id,
        MetalVariant.metal_id == metal_id,
        MetalVariant.is_favorite == True,  # noqa: E712
    ).first()


def set_favorite(db: Session, tenant_id: int, variant_id: int) -> MetalVariant:
    variant = get_variant(db, tenant_id, variant_id)
    if not variant.is_active:
        raise InvalidValue("Una variante inactiva no puede ser favorita")

    _lock_metal(db, tenant_id, variant.metal_id)
    cleared = _clear_others(db, tenant_id, variant.metal_id, keep_id=variant.id)
    # The bulk UPDATE runs first so the partial unique index never sees two favorites
    variant.is_favorite = True
    db.flush()
    logger.info("favorite set tenant=%s metal=%s variant=%s cleared=%s", tenant_id, variant.metal_id, variant.id, cleared)
    return variant


def clear_favorite(db: Session, tenant_id: int, metal_id: int) -> int:
    metal = _lock_metal(db, tenant_id, metal_id)
    cleared = _clear_others(db, tenant_id, metal.id)
    db.flush()
    logger.info("favorite cleared tenant=%s metal=%s cleared=%s", tenant_id, metal.id, cleared)
    return cleared
