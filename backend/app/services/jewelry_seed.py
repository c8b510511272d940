"""
Seed de valuación para la joyería demo: monedas, metales y variantes.
Usa los servicios para respetar las mismas reglas que la API.
"""
import logging

from sqlalchemy.orm import Session

from app.models.tenant import Tenant
from app.models.user import User
from app.services import currency_service, favorite_service, metal_service, variant_pricing


logger = logging.getLogger(__name__)


def seed_jewelry_demo(db: Session, tenant: Tenant, owner: User) -> None:
    """Seed valuation data for a jewelry store. Does not commit."""
    # First currency becomes the base
    currency_service.create_currency(db, tenant.id, 'ARS', 'Peso argentino', '$')
    usd = currency_service.create_currency(db, tenant.id, 'USD', 'Dólar estadounidense', 'US$')
    currency_service.create_currency(db, tenant.id, 'EUR', 'Euro', '€')
    currency_service.add_rate(db, tenant.id, usd.id, 1000, actor=owner)

    # Reference value per gram of pure metal, in ARS
    metals_data = [
        ('Oro', 'Au', 100000, [
            ('Oro 24k', 'AU-24K', '1.0000', True),
            ('Oro 18k', 'AU-18K', '0.7500', False),
            ('Oro 14k', 'AU-14K', '0.5850', False),
        ]),
        ('Plata', 'Ag', 1200, [
            ('Plata 925', 'AG-925', '0.9250', True),
            ('Plata 900', 'AG-900', '0.9000', False),
        ]),
    ]

    for metal_name, symbol, reference_value, variants in metals_data:
        metal = metal_service.create_metal(db, tenant.id, metal_name, symbol, reference_value, actor=owner)
        for name, sku, purity, favorite in variants:
            variant = variant_pricing.create_variant(db, tenant.id, metal.id, {
                'name': name,
                'sku': sku,
                'purity': purity,
                'buy_factor': '0.95',
                'sale_factor': '1.10',
            })
            if favorite:
                favorite_service.set_favorite(db, tenant.id, variant.id)
        logger.info("seeded metal %s with %s variants", metal_name, len(variants))
