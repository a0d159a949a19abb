"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field, UUID4
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from jewelry_ledger.domain.models import LineItemRequest, Metal, PaymentMethod, SaleRequest, SaleType


class LineItemSchema(BaseModel):
    """Stock-backed line (inventory_item_id) or custom piece (custom, metal, weight_grams)"""

    inventory_item_id: Optional[UUID4] = None
    quantity: int = 1
    custom: bool = False
    metal: Optional[Metal] = None
    weight_grams: Optional[float] = None
    name: Optional[str] = None


class SaleCreateRequest(BaseModel):
    """Request body for POST /v1/sales"""

    customer_id: Optional[UUID4] = Field(None, description="Omit for walk-in sales")
    items: List[LineItemSchema] = Field(default_factory=list)
    making_charge_pct: Decimal = Field(Decimal("0"), ge=0, le=100, decimal_places=2)
    wastage_pct: Decimal = Field(Decimal("0"), ge=0, le=100, decimal_places=2)
    tax_pct: Decimal = Field(Decimal("0"), ge=0, le=100, decimal_places=2)
    additional_charges_paise: int = Field(0, ge=0)
    cash_paise: int = Field(0, ge=0)
    card_upi_paise: int = Field(0, ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    sale_type: SaleType = SaleType.INVENTORY
    commission_pct: Optional[Decimal] = Field(
        None, ge=0, le=100, decimal_places=2, description="Commission sales only; defaults to the shop rate"
    )
    notes: Optional[str] = None

    def to_domain(self) -> SaleRequest:
        return SaleRequest(
            lines=[LineItemRequest(**item.model_dump()) for item in self.items],
            customer_id=self.customer_id,
            making_charge_pct=self.making_charge_pct,
            wastage_pct=self.wastage_pct,
            tax_pct=self.tax_pct,
            additional_charges_paise=self.additional_charges_paise,
            cash_paise=self.cash_paise,
            card_upi_paise=self.card_upi_paise,
            payment_method=self.payment_method,
            sale_type=self.sale_type,
            commission_pct=self.commission_pct,
            notes=self.notes,
        )


class SaleItemSchema(BaseModel):
    """Priced line of a committed sale"""

    model_config = ConfigDict(from_attributes=True)

    item_id: Optional[UUID4] = None
    item_name: str
    is_custom: bool
    quantity: int
    metal: str
    weight_grams: float
    price_per_gram_paise: int
    unit_price_paise: int
    total_price_paise: int


class SaleResponse(BaseModel):
    """Committed sale"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    receipt_number: str
    customer_id: Optional[UUID4] = None
    customer_detached: bool
    sale_type: str
    items: List[SaleItemSchema]
    items_total_paise: int
    making_charges_paise: int
    wastage_paise: int
    additional_charges_paise: int
    subtotal_paise: int
    tax_paise: int
    total_paise: int
    commission_pct: Optional[Decimal] = None
    commission_paise: Optional[int] = None
    payment_method: str
    payment_status: str
    cash_received_paise: int
    card_upi_received_paise: int
    credit_paise: int
    change_paise: int
    notes: Optional[str] = None
    created_at: datetime


class SaleListResponse(BaseModel):
    """Response for GET /v1/sales"""

    sales: List[SaleResponse]


class PriceSetRequest(BaseModel):
    """Request body for PUT /v1/prices/{metal}"""

    price_per_gram_paise: int = Field(..., description="Per-gram rate in paise")
    price_date: Optional[date] = Field(None, description="Defaults to today")


class PriceResponse(BaseModel):
    """Per-gram rate in effect for a metal on a date"""

    metal: Metal
    as_of: date
    price_per_gram_paise: int


class PaymentRequest(BaseModel):
    """Request body for POST /v1/customers/{customer_id}/payments"""

    amount_paise: int
    notes: Optional[str] = None


class CreditEntrySchema(BaseModel):
    """Single store-credit ledger entry"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    customer_id: Optional[UUID4] = None
    sale_id: Optional[UUID4] = None
    type: str
    amount_paise: int
    balance_after_paise: int
    due_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: datetime


class CreditHistoryResponse(BaseModel):
    """Response for GET /v1/customers/{customer_id}/credits"""

    customer_id: UUID4
    balance_paise: int
    entries: List[CreditEntrySchema]


class CustomerTotalsResponse(BaseModel):
    """Customer running totals after a recompute or payment"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    name: str
    total_purchases_paise: int
    total_credit_paise: int
    credit_limit_paise: int
    is_active: bool


class CustomerStatusRequest(BaseModel):
    """Request body for PUT /v1/customers/{customer_id}/status"""

    is_active: bool


class CustomerDeletedResponse(BaseModel):
    customer_id: UUID4
    detached_sales: int


class InventoryItemSchema(BaseModel):
    """Stock level of a catalog item"""

    model_config = ConfigDict(from_attributes=True)

    id: UUID4
    sku: str
    name: str
    material: str
    quantity: int
    weight_per_piece: float
    total_weight: float
    min_stock_level: int


class LowStockResponse(BaseModel):
    items: List[InventoryItemSchema]


class OverdueCreditsResponse(BaseModel):
    as_of: date
    entries: List[CreditEntrySchema]
