"""
Variantes de metal y cálculo de precios.

Todos los montos están en moneda base. Dado R = valor de referencia del metal:

    sugerido = R * pureza
    compra   = override de compra si modo OVERRIDE y hay override, si no sugerido * buy_factor
    venta    = override de venta  si modo OVERRIDE y hay override, si no sugerido * sale_factor

Venta < compra NO es un error acá; se advierte al cargar una cotización.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.errors import DuplicateSku, InUse, InvalidValue, NotFound
from app.core.serialization_helpers import fits_scale, to_decimal
from app.models.metal import Metal
from app.models.quote import MetalQuote
from app.models.variant import MetalVariant, PricingMode


logger = logging.getLogger(__name__)

ONE = Decimal("1")
ZERO = Decimal("0")

# Column scales: purity and factors Numeric(_, 4), prices Numeric(18, 2)
RATIO_QUANTUM = Decimal("0.0001")
PRICE_QUANTUM = Decimal("0.01")


@dataclass(frozen=True)
class VariantPrices:
    reference_value: Decimal
    suggested_price: Decimal
    final_purchase_price: Decimal
    final_sale_price: Decimal


def _dec(value, default: Optional[Decimal] = None) -> Optional[Decimal]:
    if value is None:
        return default
    return to_decimal(value)


def suggested_price(variant: MetalVariant, reference_value) -> Decimal:
    return to_decimal(reference_value) * to_decimal(variant.purity)


def _is_override(variant: MetalVariant) -> bool:
    return variant.pricing_mode == PricingMode.override.value


def final_purchase_price(variant: MetalVariant, reference_value) -> Decimal:
    if _is_override(variant) and variant.purchase_price_override is not None:
        return to_decimal(variant.purchase_price_override)
    return suggested_price(variant, reference_value) * _dec(variant.buy_factor, ONE)


def final_sale_price(variant: MetalVariant, reference_value) -> Decimal:
    if _is_override(variant) and variant.sale_price_override is not None:
        return to_decimal(variant.sale_price_override)
    return suggested_price(variant, reference_value) * _dec(variant.sale_factor, ONE)


def compute_prices(variant: MetalVariant, reference_value=None) -> VariantPrices:
    """Sin reference_value usa el valor vigente del metal de la variante"""
    if reference_value is None:
        reference_value = variant.metal.reference_value
    reference = to_decimal(reference_value)
    return VariantPrices(
        reference_value=reference,
        suggested_price=suggested_price(variant, reference),
        final_purchase_price=final_purchase_price(variant, reference),
        final_sale_price=final_sale_price(variant, reference),
    )


# ---------- validation ----------

def _parse(value, label: str) -> Decimal:
    try:
        amount = to_decimal(value)
    except (ArithmeticError, ValueError, TypeError):
        raise InvalidValue(f"{label} inválido: {value!r}")
    if not amount.is_finite():
        raise InvalidValue(f"{label} inválido: {value!r}")
    return amount


def validate_purity(value) -> Decimal:
    purity = _parse(value, "Pureza")
    if purity <= ZERO or purity > ONE:
        raise InvalidValue("La pureza debe estar entre 0 (excluido) y 1")
    if not fits_scale(purity, RATIO_QUANTUM):
        raise InvalidValue("La pureza admite hasta 4 decimales")
    return purity


def validate_factor(value, label: str) -> Decimal:
    factor = _parse(value, label)
    if factor <= ZERO:
        raise InvalidValue(f"{label} debe ser mayor a 0")
    if not fits_scale(factor, RATIO_QUANTUM):
        raise InvalidValue(f"{label} admite hasta 4 decimales")
    return factor


def validate_override(value, label: str) -> Optional[Decimal]:
    if value is None:
        return None
    amount = _parse(value, label)
    if amount < ZERO:
        raise InvalidValue(f"{label} no puede ser negativo")
    if not fits_scale(amount, PRICE_QUANTUM):
        raise InvalidValue(f"{label} admite hasta 2 decimales")
    return amount


def validate_pricing_mode(value) -> str:
    mode = (value.value if isinstance(value, PricingMode) else str(value or "")).strip().upper()
    if mode not in {m.value for m in PricingMode}:
        raise InvalidValue("Modo de precio inválido; usar AUTO u OVERRIDE")
    return mode


def _clean_text(value: Optional[str], label: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise InvalidValue(f"{label} requerido")
    return cleaned


def _ensure_sku_available(db: Session, tenant_id: int, sku: str, exclude_id: Optional[int] = None) -> None:
    # Global across metals of the tenant
    query = db.query(MetalVariant).filter(
        MetalVariant.tenant_id == tenant_id,
        func.lower(MetalVariant.sku) == sku.lower(),
    )
    if exclude_id is not None:
        query = query.filter(MetalVariant.id != exclude_id)
    if query.first():
        raise DuplicateSku(f'Ya existe una variante con SKU "{sku}"')


# ---------- operations ----------

def get_variant(db: Session, tenant_id: int, variant_id: int) -> MetalVariant:
    variant = db.query(MetalVariant).filter(
        MetalVariant.id == variant_id,
        MetalVariant.tenant_id == tenant_id,
    ).first()
    if not variant:
        raise NotFound("Variante no encontrada")
    return variant


def create_variant(db: Session, tenant_id: int, metal_id: int, data: Dict[str, Any]) -> MetalVariant:
    metal = db.query(Metal).filter(Metal.id == metal_id, Metal.tenant_id == tenant_id).first()
    if not metal:
        raise NotFound("Metal no encontrado")
    if not metal.is_active:
        raise InvalidValue("No se pueden crear variantes de un metal inactivo")

    name = _clean_text(data.get("name"), "Nombre")
    sku = _clean_text(data.get("sku"), "SKU")
    purity = validate_purity(data.get("purity"))
    buy_factor = validate_factor(data["buy_factor"], "Factor de compra") if data.get("buy_factor") is not None else ONE
    sale_factor = validate_factor(data["sale_factor"], "Factor de venta") if data.get("sale_factor") is not None else ONE
    purchase_override = validate_override(data.get("purchase_price_override"), "Precio de compra")
    sale_override = validate_override(data.get("sale_price_override"), "Precio de venta")
    mode = validate_pricing_mode(data["pricing_mode"]) if data.get("pricing_mode") else PricingMode.auto.value
    _ensure_sku_available(db, tenant_id, sku)

    variant = MetalVariant(
        tenant_id=tenant_id,
        metal_id=metal.id,
        name=name,
        sku=sku,
        purity=purity,
        is_active=True,
        is_favorite=False,
        pricing_mode=mode,
        buy_factor=buy_factor,
        sale_factor=sale_factor,
        purchase_price_override=purchase_override,
        sale_price_override=sale_override,
    )
    db.add(variant)
    db.flush()
    logger.info("variant created tenant=%s id=%s metal=%s sku=%s purity=%s", tenant_id, variant.id, metal.id, sku, purity)
    return variant


def update_variant(db: Session, tenant_id: int, variant_id: int, data: Dict[str, Any]) -> MetalVariant:
    """
    Edición de datos de la variante (name/sku/purity).
    También acepta sale_factor / sale_price_override como el modal de edición.
    """
    variant = get_variant(db, tenant_id, variant_id)

    name = _clean_text(data["name"], "Nombre") if "name" in data else None
    sku = _clean_text(data["sku"], "SKU") if "sku" in data else None
    purity = validate_purity(data["purity"]) if "purity" in data else None
    if sku is not None and sku.lower() != variant.sku.lower():
        _ensure_sku_available(db, tenant_id, sku, exclude_id=variant.id)

    pricing_patch = {k: data[k] for k in ("sale_factor", "sale_price_override") if k in data}
    _validate_pricing_patch(pricing_patch)

    if name is not None:
        variant.name = name
    if sku is not None:
        variant.sku = sku
    if purity is not None:
        variant.purity = purity
    _apply_pricing_patch(variant, pricing_patch)

    db.flush()
    logger.info("variant updated tenant=%s id=%s sku=%s purity=%s", tenant_id, variant.id, variant.sku, variant.purity)
    return variant


def _validate_pricing_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    validated: Dict[str, Any] = {}
    if patch.get("buy_factor") is not None:
        validated["buy_factor"] = validate_factor(patch["buy_factor"], "Factor de compra")
    if patch.get("sale_factor") is not None:
        validated["sale_factor"] = validate_factor(patch["sale_factor"], "Factor de venta")
    if "purchase_price_override" in patch:
        validated["purchase_price_override"] = validate_override(patch["purchase_price_override"], "Precio de compra")
    if "sale_price_override" in patch:
        validated["sale_price_override"] = validate_override(patch["sale_price_override"], "Precio de venta")
    if patch.get("pricing_mode") is not None:
        validated["pricing_mode"] = validate_pricing_mode(patch["pricing_mode"])
    return validated


def _apply_pricing_patch(variant: MetalVariant, patch: Dict[str, Any]) -> None:
    validated = _validate_pricing_patch(patch)
    for field, value in validated.items():
        setattr(variant, field, value)
    # clear flags win over a value sent in the same patch
    if patch.get("clear_purchase_override"):
        variant.purchase_price_override = None
    if patch.get("clear_sale_override"):
        variant.sale_price_override = None


def update_pricing(db: Session, tenant_id: int, variant_id: int, patch: Dict[str, Any]) -> MetalVariant:
    """
    patch: buy_factor, sale_factor, purchase_price_override, sale_price_override,
    clear_purchase_override, clear_sale_override, pricing_mode.

    Limpiar un override no cambia el modo; una variante en AUTO puede conservar
    overrides viejos que se ignoran hasta volver a OVERRIDE.
    """
    variant = get_variant(db, tenant_id, variant_id)
    _validate_pricing_patch(patch)
    _apply_pricing_patch(variant, patch)
    db.flush()
    logger.info(
        "variant pricing tenant=%s id=%s mode=%s buy=%s sale=%s purchase_override=%s sale_override=%s",
        tenant_id,
        variant.id,
        variant.pricing_mode,
        variant.buy_factor,
        variant.sale_factor,
        variant.purchase_price_override,
        variant.sale_price_override,
    )
    return variant


def toggle_variant_active(db: Session, tenant_id: int, variant_id: int, is_active: bool) -> MetalVariant:
    variant = get_variant(db, tenant_id, variant_id)
    variant.is_active = is_active
    if not is_active:
        # An inactive variant cannot stay as the metal's default pick
        variant.is_favorite = False
    db.flush()
    logger.info("variant active tenant=%s id=%s is_active=%s", tenant_id, variant.id, is_active)
    return variant


def delete_variant(db: Session, tenant_id: int, variant_id: int) -> None:
    variant = get_variant(db, tenant_id, variant_id)
    quotes = db.query(MetalQuote).filter(
        MetalQuote.tenant_id == tenant_id,
        MetalQuote.variant_id == variant.id,
    ).count()
    if quotes:
        raise InUse(f"La variante tiene {quotes} cotizaciones; desactivala en su lugar")
    db.delete(variant)
    db.flush()
    logger.info("variant deleted tenant=%s id=%s", tenant_id, variant_id)


def _in_range(value: Decimal, minimum, maximum) -> bool:
    if minimum is not None and value < to_decimal(minimum):
        return False
    if maximum is not None and value > to_decimal(maximum):
        return False
    return True


def list_variants(
    db: Session,
    tenant_id: int,
    metal_id: int,
    q: Optional[str] = None,
    is_active: Optional[bool] = None,
    only_favorites: bool = False,
    min_purchase=None,
    max_purchase=None,
    min_sale=None,
    max_sale=None,
) -> List[tuple]:
    """Retorna [(variante, precios)] filtrando por los precios finales calculados"""
    metal = db.query(Metal).filter(Metal.id == metal_id, Metal.tenant_id == tenant_id).first()
    if not metal:
        raise NotFound("Metal no encontrado")

    query = db.query(MetalVariant).filter(
        MetalVariant.tenant_id == tenant_id,
        MetalVariant.metal_id == metal.id,
    )
    if q:
        qn = q.strip().lower()
        if qn:
            query = query.filter(
                or_(
                    func.lower(MetalVariant.name).like(f"%{qn}%"),
                    func.lower(MetalVariant.sku).like(f"%{qn}%"),
                )
            )
    if is_active is not None:
        query = query.filter(MetalVariant.is_active == is_active)
    if only_favorites:
        query = query.filter(MetalVariant.is_favorite == True)  # noqa: E712

    rows = []
    for variant in query.order_by(MetalVariant.purity.desc(), MetalVariant.name.asc()).all():
        prices = compute_prices(variant, metal.reference_value)
        if not _in_range(prices.final_purchase_price, min_purchase, max_purchase):
            continue
        if not _in_range(prices.final_sale_price, min_sale, max_sale):
            continue
        rows.append((variant, prices))
    return rows
