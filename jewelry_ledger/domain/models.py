"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class Metal(str, Enum):
    GOLD = "gold"
    SILVER = "silver"
    DIAMOND = "diamond"
    PLATINUM = "platinum"
    OTHER = "other"


class Category(str, Enum):
    RING = "ring"
    NECKLACE = "necklace"
    BRACELET = "bracelet"
    EARRINGS = "earrings"
    CHAIN = "chain"
    PENDANT = "pendant"
    BANGLES = "bangles"
    ANKLET = "anklet"
    OTHER = "other"


class SaleType(str, Enum):
    INVENTORY = "inventory"  # Sold from stock
    COMMISSION = "commission"  # Sold on behalf of a supplier for a commission
    CUSTOM_ORDER = "custom_order"  # Made to order


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    CREDIT = "credit"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PARTIAL = "partial"
    PENDING = "pending"


class CreditType(str, Enum):
    CREDIT = "credit"  # Amount owed by the customer
    PAYMENT = "payment"  # Amount repaid


@dataclass
class LineItemRequest:
    """Requested sale line: stock-backed (inventory_item_id) or custom piece"""

    inventory_item_id: Optional[uuid.UUID] = None
    quantity: int = 1
    custom: bool = False
    metal: Optional[Metal] = None
    weight_grams: Optional[float] = None
    name: Optional[str] = None


@dataclass
class SaleRequest:
    """Proposed sale as submitted by the caller"""

    lines: List[LineItemRequest]
    customer_id: Optional[uuid.UUID] = None
    making_charge_pct: Decimal = Decimal("0")
    wastage_pct: Decimal = Decimal("0")
    tax_pct: Decimal = Decimal("0")
    additional_charges_paise: int = 0
    cash_paise: int = 0
    card_upi_paise: int = 0
    payment_method: PaymentMethod = PaymentMethod.CASH
    sale_type: SaleType = SaleType.INVENTORY
    commission_pct: Optional[Decimal] = None  # Commission sales only; defaults to the configured rate
    notes: Optional[str] = None


@dataclass(frozen=True)
class StockSnapshot:
    """Read-only view of an inventory item used for pricing decisions"""

    item_id: uuid.UUID
    name: str
    material: Metal
    quantity: int
    weight_per_piece: float
    min_stock_level: int


@dataclass(frozen=True)
class ResolvedLine:
    """Line item with weight and metal resolved from inventory or request"""

    item_id: Optional[uuid.UUID]
    name: str
    metal: Metal
    weight_grams: float
    quantity: int
    is_custom: bool


@dataclass(frozen=True)
class LinePrice:
    """Priced line item"""

    line: ResolvedLine
    price_per_gram_paise: int
    base_paise: int
    making_charges_paise: int
    wastage_paise: int
    total_paise: int
    unit_price_paise: int


@dataclass(frozen=True)
class SaleTotals:
    """Monetary breakdown of a sale"""

    items_total_paise: int
    making_charges_paise: int
    wastage_paise: int
    additional_charges_paise: int
    subtotal_paise: int
    tax_paise: int
    grand_total_paise: int


@dataclass(frozen=True)
class PaymentOutcome:
    """Payment decision for a sale"""

    total_received_paise: int
    credit_paise: int
    change_paise: int
    status: PaymentStatus


@dataclass(frozen=True)
class SalePlan:
    """Everything Phase 3 needs to write, computed without I/O"""

    lines: List[LinePrice]
    totals: SaleTotals
    payment: PaymentOutcome
    receipt_number: str
    commission_pct: Optional[Decimal] = None
    commission_paise: Optional[int] = None


@dataclass(frozen=True)
class AggregateSnapshot:
    """Ledger-derived customer totals"""

    customer_id: uuid.UUID
    total_purchases_paise: int = 0
    credit_paise: int = 0
    payment_paise: int = 0

    @property
    def balance_paise(self) -> int:
        return self.credit_paise - self.payment_paise

    def plus(self, sale_paise: int = 0, credit_paise: int = 0, payment_paise: int = 0) -> "AggregateSnapshot":
        """Snapshot including writes made by the current transaction"""
        return replace(
            self,
            total_purchases_paise=self.total_purchases_paise + sale_paise,
            credit_paise=self.credit_paise + credit_paise,
            payment_paise=self.payment_paise + payment_paise,
        )


@dataclass
class LedgerViolation:
    """Inconsistency found by the ledger audit"""

    kind: str
    entity_id: uuid.UUID
    detail: str
    context: dict = field(default_factory=dict)
