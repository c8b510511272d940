import pytest

from app.core.errors import InvalidValue, NotFound
from app.models.variant import MetalVariant
from app.services import favorite_service, metal_service, variant_pricing


@pytest.fixture
def gold_variants(db, tenant, oro):
    variants = [
        variant_pricing.create_variant(db, tenant.id, oro.id, {"name": name, "sku": sku, "purity": purity})
        for name, sku, purity in [("Oro 24k", "AU-24K", 1), ("Oro 18k", "AU-18K", "0.75"), ("Oro 14k", "AU-14K", "0.585")]
    ]
    db.commit()
    return variants


def _favorites(db, metal_id):
    return [
        v.id for v in db.query(MetalVariant).filter(
            MetalVariant.metal_id == metal_id,
            MetalVariant.is_favorite == True,  # noqa: E712
        ).all()
    ]


def test_no_favorite_initially(db, oro, gold_variants):
    assert _favorites(db, oro.id) == []


def test_set_favorite_replaces_previous(db, tenant, oro, gold_variants):
    x, y, _ = gold_variants
    favorite_service.set_favorite(db, tenant.id, x.id)
    db.commit()
    favorite_service.set_favorite(db, tenant.id, y.id)
    db.commit()

    assert _favorites(db, oro.id) == [y.id]
    db.refresh(x)
    assert x.is_favorite is False


def test_set_favorite_twice_is_idempotent(db, tenant, oro, gold_variants):
    x = gold_variants[0]
    favorite_service.set_favorite(db, tenant.id, x.id)
    favorite_service.set_favorite(db, tenant.id, x.id)
    db.commit()
    assert _favorites(db, oro.id) == [x.id]


def test_favorites_are_per_metal(db, tenant, oro, gold_variants):
    plata = metal_service.create_metal(db, tenant.id, "Plata", "Ag", 1200)
    ag = variant_pricing.create_variant(db, tenant.id, plata.id, {"name": "Plata 925", "sku": "AG-925", "purity": "0.925"})
    favorite_service.set_favorite(db, tenant.id, gold_variants[1].id)
    favorite_service.set_favorite(db, tenant.id, ag.id)
    db.commit()

    assert _favorites(db, oro.id) == [gold_variants[1].id]
    assert _favorites(db, plata.id) == [ag.id]


def test_clear_favorite(db, tenant, oro, gold_variants):
    favorite_service.set_favorite(db, tenant.id, gold_variants[2].id)
    db.commit()
    assert favorite_service.clear_favorite(db, tenant.id, oro.id) == 1
    db.commit()
    assert _favorites(db, oro.id) == []
    assert favorite_service.get_favorite(db, tenant.id, oro.id) is None


def test_inactive_variant_cannot_be_favorite(db, tenant, gold_variants):
    variant_pricing.toggle_variant_active(db, tenant.id, gold_variants[0].id, False)
    with pytest.raises(InvalidValue):
        favorite_service.set_favorite(db, tenant.id, gold_variants[0].id)


def test_deactivating_favorite_clears_it(db, tenant, oro, gold_variants):
    favorite_service.set_favorite(db, tenant.id, gold_variants[0].id)
    variant_pricing.toggle_variant_active(db, tenant.id, gold_variants[0].id, False)
    db.commit()
    assert _favorites(db, oro.id) == []


def test_clear_favorite_unknown_metal(db, tenant):
    with pytest.raises(NotFound):
        favorite_service.clear_favorite(db, tenant.id, 999)
