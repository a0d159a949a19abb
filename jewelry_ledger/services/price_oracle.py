"""Daily metal rates with fallback to earlier days and configured defaults"""

from datetime import date
from typing import Dict, Iterable, List, Optional
from sqlalchemy.orm import Session

from jewelry_ledger.config import settings
from jewelry_ledger.domain.exceptions import InvalidPriceError
from jewelry_ledger.domain.models import Metal
from jewelry_ledger.infrastructure.database.models import DailyPrice
from jewelry_ledger.infrastructure.database.repositories import PriceRepository


def default_rates() -> Dict[Metal, int]:
    """Built-in per-gram rates used when no daily price was ever recorded"""
    return {
        Metal.GOLD: settings.default_price_gold_paise,
        Metal.SILVER: settings.default_price_silver_paise,
        Metal.PLATINUM: settings.default_price_platinum_paise,
        Metal.DIAMOND: settings.default_price_diamond_paise,
        Metal.OTHER: settings.default_price_other_paise,
    }


class PriceOracle:
    """Per-gram metal prices, one record per metal per day"""

    def __init__(self, db: Session, defaults: Optional[Dict[Metal, int]] = None):
        self.repo = PriceRepository(db)
        self.defaults = defaults if defaults is not None else default_rates()

    def get_price(self, metal: Metal, as_of: Optional[date] = None) -> int:
        """
        Price per gram (paise) in effect on as_of.

        Falls back to the most recent earlier record, then to the built-in
        default. Never raises: missing data is not an error here.
        """
        as_of = as_of or date.today()
        record = self.repo.latest_on_or_before(metal.value, as_of)
        if record is not None:
            return record.price_per_gram_paise
        return self.defaults.get(metal, 0)

    def get_rates(self, metals: Iterable[Metal], as_of: Optional[date] = None) -> Dict[Metal, int]:
        as_of = as_of or date.today()
        return {metal: self.get_price(metal, as_of) for metal in set(metals)}

    def set_price(self, metal: Metal, price_per_gram_paise: int, price_date: Optional[date] = None) -> DailyPrice:
        """Upsert the record for price_date; repeated calls the same day overwrite"""
        if price_per_gram_paise <= 0:
            raise InvalidPriceError(f"Price per gram must be positive, got {price_per_gram_paise}")
        return self.repo.upsert(metal.value, price_per_gram_paise, price_date or date.today())

    def history(self, metal: Metal, limit: int = 30) -> List[DailyPrice]:
        """Most recent daily records for a metal, newest first"""
        return self.repo.history(metal.value, limit)
