from datetime import timedelta
from decimal import Decimal

import pytest

from app.core.errors import InvalidTimestamp, InvalidValue
from app.core.time_helpers import utc_now
from app.models.currency import CurrencyRate
from app.services.rate_store import currency_rates, metal_references


def test_current_value_is_latest_effective_not_latest_inserted(db, tenant, usd, owner):
    now = utc_now()
    currency_rates.append(db, tenant.id, usd.id, 1100, now - timedelta(days=1), owner)
    # Backdated row inserted later must not become current
    currency_rates.append(db, tenant.id, usd.id, 900, now - timedelta(days=3), owner)
    db.commit()

    assert currency_rates.current_value(db, tenant.id, usd.id) == Decimal("1100")


def test_same_effective_at_later_insert_wins(db, tenant, usd, owner):
    at = utc_now() - timedelta(hours=2)
    currency_rates.append(db, tenant.id, usd.id, 1200, at, owner)
    currency_rates.append(db, tenant.id, usd.id, 1250, at, owner)
    db.commit()

    assert currency_rates.current_value(db, tenant.id, usd.id) == Decimal("1250")


def test_value_as_of_past_time(db, tenant, usd, owner):
    now = utc_now()
    currency_rates.append(db, tenant.id, usd.id, 800, now - timedelta(days=10), owner)
    currency_rates.append(db, tenant.id, usd.id, 850, now - timedelta(days=5), owner)
    db.commit()

    assert currency_rates.value_as_of(db, tenant.id, usd.id, now - timedelta(days=7)) == Decimal("800")
    assert currency_rates.value_as_of(db, tenant.id, usd.id, now - timedelta(days=20)) is None


def test_current_value_absent_without_rows(db, tenant, ars):
    assert currency_rates.current_value(db, tenant.id, ars.id) is None


def test_future_effective_at_rejected(db, tenant, usd, owner):
    with pytest.raises(InvalidTimestamp):
        currency_rates.append(db, tenant.id, usd.id, 1000, utc_now() + timedelta(days=1), owner)


@pytest.mark.parametrize("value", [0, -5, "abc", float("nan")])
def test_currency_rate_must_be_positive(db, tenant, usd, value):
    with pytest.raises(InvalidValue):
        currency_rates.append(db, tenant.id, usd.id, value)


def test_metal_reference_accepts_zero_but_not_negative(db, tenant, oro):
    record = metal_references.append(db, tenant.id, oro.id, 0)
    assert record.reference_value == 0
    with pytest.raises(InvalidValue):
        metal_references.append(db, tenant.id, oro.id, -1)


def test_history_most_recent_first_and_limited(db, tenant, usd, owner):
    now = utc_now()
    for days, rate in [(4, 700), (2, 900), (3, 800)]:
        currency_rates.append(db, tenant.id, usd.id, rate, now - timedelta(days=days), owner)
    db.commit()

    rows = currency_rates.history(db, tenant.id, usd.id, 3)
    assert [Decimal(str(r.rate)) for r in rows] == [Decimal("1000"), Decimal("900"), Decimal("800")]
    assert all(isinstance(r, CurrencyRate) for r in rows)
    assert rows[0].created_by_id == owner.id


def test_effective_at_seconds_ahead_rejected(db, tenant, usd, owner):
    with pytest.raises(InvalidTimestamp):
        currency_rates.append(db, tenant.id, usd.id, 1000, utc_now() + timedelta(seconds=5), owner)


def test_value_beyond_stored_scale_rejected(db, tenant, usd):
    with pytest.raises(InvalidValue):
        currency_rates.append(db, tenant.id, usd.id, "0.0000000000001")
    record = currency_rates.append(db, tenant.id, usd.id, "0.000000000001")
    assert record.rate > 0
