from decimal import Decimal

import pytest

from app.core.errors import DuplicateName, DuplicateSymbol, InUse, InvalidValue
from app.models.metal import MetalReferenceHistory
from app.services import metal_service


def _orders(db, tenant):
    return [(m.name, m.sort_order) for m in metal_service.list_metals(db, tenant.id)]


def test_create_assigns_next_sort_order(db, tenant):
    a = metal_service.create_metal(db, tenant.id, "Oro", "Au")
    b = metal_service.create_metal(db, tenant.id, "Plata", "Ag")
    c = metal_service.create_metal(db, tenant.id, "Platino")
    assert (a.sort_order, b.sort_order, c.sort_order) == (1, 2, 3)
    assert c.symbol is None


def test_duplicate_name_case_insensitive(db, tenant, oro):
    with pytest.raises(DuplicateName):
        metal_service.create_metal(db, tenant.id, "ORO")


def test_duplicate_symbol_only_when_non_empty(db, tenant, oro):
    with pytest.raises(DuplicateSymbol):
        metal_service.create_metal(db, tenant.id, "Oro rosa", "au")
    metal_service.create_metal(db, tenant.id, "Cobre", "")
    metal_service.create_metal(db, tenant.id, "Bronce", None)


def test_update_checks_exclude_self(db, tenant, oro):
    plata = metal_service.create_metal(db, tenant.id, "Plata", "Ag")
    metal_service.update_metal(db, tenant.id, oro.id, name="oro", symbol="AU")
    with pytest.raises(DuplicateName):
        metal_service.update_metal(db, tenant.id, plata.id, name="Oro")


def test_reference_change_appends_history(db, tenant, oro, owner):
    before = db.query(MetalReferenceHistory).filter(MetalReferenceHistory.metal_id == oro.id).count()
    metal_service.update_metal(db, tenant.id, oro.id, reference_value=120000, actor=owner)
    # Same value again does not append
    metal_service.update_metal(db, tenant.id, oro.id, reference_value=120000, actor=owner)
    db.commit()

    after = db.query(MetalReferenceHistory).filter(MetalReferenceHistory.metal_id == oro.id).count()
    assert after == before + 1
    metal, current, history = metal_service.reference_history(db, tenant.id, oro.id, 10)
    assert Decimal(str(current.reference_value)) == Decimal("120000")
    assert Decimal(str(metal.reference_value)) == Decimal("120000")
    assert [Decimal(str(h.reference_value)) for h in history] == [Decimal("120000"), Decimal("100000")]
    assert history[0].created_by_id == owner.id


def test_negative_reference_rejected(db, tenant, oro):
    with pytest.raises(InvalidValue):
        metal_service.update_metal(db, tenant.id, oro.id, reference_value=-1)


def test_move_up_on_first_is_noop(db, tenant):
    metal_service.create_metal(db, tenant.id, "Oro")
    metal_service.create_metal(db, tenant.id, "Plata")
    first = metal_service.list_metals(db, tenant.id)[0]
    before = _orders(db, tenant)

    assert metal_service.move_metal(db, tenant.id, first.id, "UP") is False
    assert _orders(db, tenant) == before


def test_move_down_on_last_is_noop(db, tenant):
    metal_service.create_metal(db, tenant.id, "Oro")
    last = metal_service.create_metal(db, tenant.id, "Plata")
    assert metal_service.move_metal(db, tenant.id, last.id, "DOWN") is False


def test_move_swaps_with_adjacent_active(db, tenant):
    oro = metal_service.create_metal(db, tenant.id, "Oro")
    plata = metal_service.create_metal(db, tenant.id, "Plata")
    platino = metal_service.create_metal(db, tenant.id, "Platino")
    metal_service.toggle_metal_active(db, tenant.id, plata.id, False)

    # Inactive Plata is skipped
    assert metal_service.move_metal(db, tenant.id, platino.id, "up") is True
    assert platino.sort_order == 1
    assert oro.sort_order == 3
    assert plata.sort_order == 2


def test_move_invalid_direction(db, tenant, oro):
    with pytest.raises(InvalidValue):
        metal_service.move_metal(db, tenant.id, oro.id, "LEFT")


def test_delete_with_variants_is_in_use(db, tenant, oro_18k):
    with pytest.raises(InUse):
        metal_service.delete_metal(db, tenant.id, oro_18k.metal_id)


def test_delete_metal_without_dependents(db, tenant):
    metal = metal_service.create_metal(db, tenant.id, "Paladio")
    db.commit()
    metal_service.delete_metal(db, tenant.id, metal.id)
    db.commit()
    assert metal_service.list_metals(db, tenant.id) == []
