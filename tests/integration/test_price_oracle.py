"""Integration tests for daily metal rates"""

import pytest
from datetime import timedelta
from jewelry_ledger.domain.exceptions import InvalidPriceError
from jewelry_ledger.domain.models import Metal
from jewelry_ledger.infrastructure.database.models import DailyPrice
from jewelry_ledger.services.price_oracle import PriceOracle, default_rates
from tests.builders import TODAY


def test_exact_day_rate(db, set_price):
    set_price(Metal.GOLD, 925_000)

    assert PriceOracle(db).get_price(Metal.GOLD, TODAY) == 925_000


def test_falls_back_to_most_recent_earlier_day(db, set_price):
    """Latest record on or before the date wins; later records are ignored"""
    set_price(Metal.GOLD, 900_000, price_date=TODAY - timedelta(days=10))
    set_price(Metal.GOLD, 910_000, price_date=TODAY - timedelta(days=2))
    set_price(Metal.GOLD, 990_000, price_date=TODAY + timedelta(days=1))

    assert PriceOracle(db).get_price(Metal.GOLD, TODAY) == 910_000


def test_falls_back_to_defaults_without_records(db):
    """Built-in rates apply when a metal was never priced"""
    oracle = PriceOracle(db)

    assert oracle.get_price(Metal.GOLD, TODAY) == 920_000
    assert oracle.get_price(Metal.SILVER, TODAY) == 11_000
    assert oracle.get_price(Metal.PLATINUM, TODAY) == 350_000
    assert oracle.get_price(Metal.DIAMOND, TODAY) == 11_000
    assert oracle.get_price(Metal.OTHER, TODAY) == 11_000


def test_future_only_record_is_not_used(db, set_price):
    set_price(Metal.SILVER, 12_000, price_date=TODAY + timedelta(days=5))

    assert PriceOracle(db).get_price(Metal.SILVER, TODAY) == default_rates()[Metal.SILVER]


def test_custom_defaults(db):
    oracle = PriceOracle(db, defaults={Metal.DIAMOND: 5_000_000})

    assert oracle.get_price(Metal.DIAMOND, TODAY) == 5_000_000
    assert oracle.get_price(Metal.OTHER, TODAY) == 0


def test_same_day_set_overwrites(db, set_price):
    """One record per metal per day"""
    set_price(Metal.GOLD, 920_000)
    set_price(Metal.GOLD, 935_000)

    assert db.query(DailyPrice).filter_by(metal="gold").count() == 1
    assert PriceOracle(db).get_price(Metal.GOLD, TODAY) == 935_000


def test_rates_for_several_metals(db, set_price):
    set_price(Metal.GOLD, 930_000)

    rates = PriceOracle(db).get_rates([Metal.GOLD, Metal.SILVER, Metal.GOLD], TODAY)

    assert rates == {Metal.GOLD: 930_000, Metal.SILVER: 11_000}


@pytest.mark.parametrize("price", [0, -100])
def test_non_positive_price_rejected(db, price):
    with pytest.raises(InvalidPriceError):
        PriceOracle(db).set_price(Metal.GOLD, price, TODAY)


def test_history_newest_first(db, set_price):
    for days_ago, paise in [(3, 900_000), (1, 915_000), (2, 905_000)]:
        set_price(Metal.GOLD, paise, price_date=TODAY - timedelta(days=days_ago))
    set_price(Metal.SILVER, 11_500)

    history = PriceOracle(db).history(Metal.GOLD, limit=2)

    assert [h.price_per_gram_paise for h in history] == [915_000, 905_000]
