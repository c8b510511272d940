from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.errors import InvalidTimestamp, InvalidValue, NotFound
from app.core.time_helpers import utc_now
from app.services import currency_service, quote_service
from app.services.quote_service import SALE_BELOW_PURCHASE


def test_add_quote_without_warning(db, tenant, usd, oro_18k, owner):
    result = quote_service.add_quote(db, tenant.id, oro_18k.id, usd.id, 70, 85, actor=owner)
    assert result.warnings == []
    assert result.quote.created_by_id == owner.id


def test_sale_below_purchase_is_a_warning(db, tenant, usd, oro_18k):
    result = quote_service.add_quote(db, tenant.id, oro_18k.id, usd.id, 90, 80)
    db.commit()
    assert result.warnings == [SALE_BELOW_PURCHASE]
    assert result.quote.id is not None


def test_latest_quote_per_currency(db, tenant, ars, usd, oro_18k):
    now = utc_now()
    quote_service.add_quote(db, tenant.id, oro_18k.id, usd.id, 70, 80, now - timedelta(days=2))
    quote_service.add_quote(db, tenant.id, oro_18k.id, usd.id, 72, 82, now - timedelta(days=1))
    quote_service.add_quote(db, tenant.id, oro_18k.id, ars.id, 70000, 80000)
    db.commit()

    latest = quote_service.latest_quote(db, tenant.id, oro_18k.id, usd.id)
    assert Decimal(str(latest.purchase_price)) == Decimal("72")
    assert len(quote_service.list_quotes(db, tenant.id, oro_18k.id, 50)) == 3
    assert len(quote_service.list_quotes(db, tenant.id, oro_18k.id, 2)) == 2


@pytest.mark.parametrize("purchase,sale", [(-1, 10), (10, -1), (None, 10)])
def test_invalid_prices(db, tenant, usd, oro_18k, purchase, sale):
    with pytest.raises(InvalidValue):
        quote_service.add_quote(db, tenant.id, oro_18k.id, usd.id, purchase, sale)


def test_future_quote_rejected(db, tenant, usd, oro_18k):
    with pytest.raises(InvalidTimestamp):
        quote_service.add_quote(db, tenant.id, oro_18k.id, usd.id, 1, 2, utc_now() + timedelta(days=2))


def test_inactive_currency_rejected(db, tenant, usd, oro_18k):
    currency_service.toggle_currency_active(db, tenant.id, usd.id, False)
    with pytest.raises(InvalidValue):
        quote_service.add_quote(db, tenant.id, oro_18k.id, usd.id, 1, 2)


def test_unknown_currency(db, tenant, oro_18k):
    with pytest.raises(NotFound):
        quote_service.add_quote(db, tenant.id, oro_18k.id, 12345, 1, 2)
