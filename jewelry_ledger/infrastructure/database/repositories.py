"""Data access layer for ledger entities"""

import uuid
from datetime import date
from typing import Dict, List, Optional
from sqlalchemy import and_, func, select, update
from sqlalchemy.orm import Session, selectinload
from jewelry_ledger.infrastructure.database.models import (
    CreditTransaction,
    Customer,
    DailyPrice,
    InventoryItem,
    Sale,
    SaleItem,
)
from jewelry_ledger.domain.models import CreditType, LinePrice, SalePlan, SaleRequest


class PriceRepository:
    """Repository for daily metal prices"""

    def __init__(self, db: Session):
        self.db = db

    def get_for_date(self, metal: str, price_date: date) -> Optional[DailyPrice]:
        return (
            self.db.query(DailyPrice)
            .filter(DailyPrice.metal == metal, DailyPrice.price_date == price_date)
            .first()
        )

    def latest_on_or_before(self, metal: str, as_of: date) -> Optional[DailyPrice]:
        """Most recent record for a metal dated on or before as_of"""
        return (
            self.db.query(DailyPrice)
            .filter(DailyPrice.metal == metal, DailyPrice.price_date <= as_of)
            .order_by(DailyPrice.price_date.desc())
            .first()
        )

    def upsert(self, metal: str, price_per_gram_paise: int, price_date: date) -> DailyPrice:
        """Overwrite the record for (metal, date) or create it"""
        record = self.get_for_date(metal, price_date)
        if record is None:
            record = DailyPrice(metal=metal, price_date=price_date, price_per_gram_paise=price_per_gram_paise)
            self.db.add(record)
        else:
            record.price_per_gram_paise = price_per_gram_paise
        return record

    def history(self, metal: str, limit: int = 30) -> List[DailyPrice]:
        return (
            self.db.query(DailyPrice)
            .filter(DailyPrice.metal == metal)
            .order_by(DailyPrice.price_date.desc())
            .limit(limit)
            .all()
        )


class InventoryRepository:
    """Repository for inventory items"""

    def __init__(self, db: Session):
        self.db = db

    def create_item(
        self,
        sku: str,
        name: str,
        material: str,
        weight_per_piece: float,
        quantity: int = 0,
        category: str = "other",
        min_stock_level: int = 5,
    ) -> InventoryItem:
        item = InventoryItem(
            sku=sku,
            name=name,
            category=category,
            material=material,
            quantity=quantity,
            weight_per_piece=weight_per_piece,
            total_weight=round(quantity * weight_per_piece, 3),
            min_stock_level=min_stock_level,
        )
        self.db.add(item)
        self.db.flush()
        return item

    def get_item(self, item_id: uuid.UUID) -> Optional[InventoryItem]:
        """Fetch by primary key; returns the identity-mapped row when already loaded"""
        return self.db.get(InventoryItem, item_id)

    def get_low_stock(self) -> List[InventoryItem]:
        return (
            self.db.query(InventoryItem)
            .filter(InventoryItem.quantity <= InventoryItem.min_stock_level)
            .order_by(InventoryItem.quantity, InventoryItem.name)
            .all()
        )


class CustomerRepository:
    """Repository for customers"""

    def __init__(self, db: Session):
        self.db = db

    def create_customer(
        self,
        name: str,
        phone: str,
        email: Optional[str] = None,
        address: Optional[str] = None,
        city: Optional[str] = None,
        credit_limit_paise: int = 0,
    ) -> Customer:
        customer = Customer(
            name=name,
            phone=phone,
            email=email,
            address=address,
            city=city,
            credit_limit_paise=credit_limit_paise,
            total_purchases_paise=0,
            total_credit_paise=0,
        )
        self.db.add(customer)
        self.db.flush()
        return customer

    def get_customer(self, customer_id: uuid.UUID) -> Optional[Customer]:
        return self.db.get(Customer, customer_id)

    def list_customers(self) -> List[Customer]:
        return self.db.query(Customer).order_by(Customer.created_at.desc()).all()

    def detach_history(self, customer_id: uuid.UUID) -> int:
        """Null out the customer reference on sales and ledger entries, flagging them detached"""
        detached_sales = self.db.execute(
            update(Sale)
            .where(Sale.customer_id == customer_id)
            .values(customer_id=None, customer_detached=True)
        ).rowcount
        self.db.execute(
            update(CreditTransaction)
            .where(CreditTransaction.customer_id == customer_id)
            .values(customer_id=None, customer_detached=True)
        )
        return detached_sales


class CreditRepository:
    """Repository for append-only credit ledger entries"""

    def __init__(self, db: Session):
        self.db = db

    def add_entry(
        self,
        customer_id: uuid.UUID,
        type: CreditType,
        amount_paise: int,
        balance_after_paise: int,
        sale_id: Optional[uuid.UUID] = None,
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> CreditTransaction:
        entry = CreditTransaction(
            customer_id=customer_id,
            sale_id=sale_id,
            type=type.value,
            amount_paise=amount_paise,
            balance_after_paise=balance_after_paise,
            due_date=due_date,
            notes=notes,
        )
        self.db.add(entry)
        return entry

    def sum_by_type(self, customer_id: uuid.UUID) -> Dict[str, int]:
        """Total ledger amount per entry type for a customer"""
        rows = self.db.execute(
            select(CreditTransaction.type, func.coalesce(func.sum(CreditTransaction.amount_paise), 0))
            .where(CreditTransaction.customer_id == customer_id)
            .group_by(CreditTransaction.type)
        ).all()
        totals = {CreditType.CREDIT.value: 0, CreditType.PAYMENT.value: 0}
        for entry_type, total in rows:
            totals[entry_type] = int(total)
        return totals

    def get_entries(self, customer_id: uuid.UUID) -> List[CreditTransaction]:
        return (
            self.db.query(CreditTransaction)
            .filter(CreditTransaction.customer_id == customer_id)
            .order_by(CreditTransaction.created_at.desc())
            .all()
        )

    def get_entries_for_sale(self, sale_id: uuid.UUID) -> List[CreditTransaction]:
        return self.db.query(CreditTransaction).filter(CreditTransaction.sale_id == sale_id).all()

    def get_due_credits(self, as_of: date) -> List[CreditTransaction]:
        """Credit entries due on or before as_of whose customer still carries a balance"""
        return (
            self.db.query(CreditTransaction)
            .join(Customer, Customer.id == CreditTransaction.customer_id)
            .filter(
                and_(
                    CreditTransaction.type == CreditType.CREDIT.value,
                    CreditTransaction.due_date.is_not(None),
                    CreditTransaction.due_date <= as_of,
                    Customer.total_credit_paise > 0,
                )
            )
            .order_by(CreditTransaction.due_date)
            .all()
        )


class SaleRepository:
    """Repository for sales and their line items"""

    def __init__(self, db: Session):
        self.db = db

    def create_sale(self, request: SaleRequest, plan: SalePlan) -> Sale:
        """Stage a sale and its items; nothing is written until commit"""
        sale = Sale(
            id=uuid.uuid4(),
            customer_id=request.customer_id,
            receipt_number=plan.receipt_number,
            sale_type=request.sale_type.value,
            items_total_paise=plan.totals.items_total_paise,
            making_charges_paise=plan.totals.making_charges_paise,
            wastage_paise=plan.totals.wastage_paise,
            additional_charges_paise=plan.totals.additional_charges_paise,
            subtotal_paise=plan.totals.subtotal_paise,
            tax_paise=plan.totals.tax_paise,
            total_paise=plan.totals.grand_total_paise,
            making_charge_pct=request.making_charge_pct,
            wastage_pct=request.wastage_pct,
            tax_pct=request.tax_pct,
            commission_pct=plan.commission_pct,
            commission_paise=plan.commission_paise,
            payment_method=request.payment_method.value,
            payment_status=plan.payment.status.value,
            cash_received_paise=request.cash_paise,
            card_upi_received_paise=request.card_upi_paise,
            credit_paise=plan.payment.credit_paise,
            change_paise=plan.payment.change_paise,
            notes=request.notes,
        )
        sale.items = [self._to_sale_item(i, priced) for i, priced in enumerate(plan.lines, start=1)]
        self.db.add(sale)
        return sale

    @staticmethod
    def _to_sale_item(line_number: int, priced: LinePrice) -> SaleItem:
        line = priced.line
        return SaleItem(
            line_number=line_number,
            item_id=line.item_id,
            item_name=line.name,
            is_custom=line.is_custom,
            quantity=line.quantity,
            metal=line.metal.value,
            weight_grams=line.weight_grams,
            price_per_gram_paise=priced.price_per_gram_paise,
            unit_price_paise=priced.unit_price_paise,
            total_price_paise=priced.total_paise,
        )

    def get_sale(self, sale_id: uuid.UUID) -> Optional[Sale]:
        return (
            self.db.query(Sale)
            .options(selectinload(Sale.items))
            .filter(Sale.id == sale_id)
            .first()
        )

    def get_recent_sales(self, customer_id: Optional[uuid.UUID] = None, limit: int = 50) -> List[Sale]:
        query = self.db.query(Sale).options(selectinload(Sale.items))
        if customer_id is not None:
            query = query.filter(Sale.customer_id == customer_id)
        return query.order_by(Sale.created_at.desc()).limit(limit).all()

    def sum_totals(self, customer_id: uuid.UUID) -> int:
        """Lifetime purchase total for a customer"""
        total = self.db.execute(
            select(func.coalesce(func.sum(Sale.total_paise), 0)).where(Sale.customer_id == customer_id)
        ).scalar_one()
        return int(total)

    def all_sales(self) -> List[Sale]:
        return self.db.query(Sale).all()
