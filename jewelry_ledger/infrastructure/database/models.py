"""SQLAlchemy ORM models for the retail ledger"""

import uuid
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class InventoryItem(Base):
    """Stock-keeping record for a catalog piece"""

    __tablename__ = "inventory_item"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sku = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    category = Column(Text, nullable=False, default="other")
    material = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    weight_per_piece = Column(Float, nullable=False, default=0.0)
    total_weight = Column(Float, nullable=False, default=0.0)  # quantity × weight_per_piece
    min_stock_level = Column(Integer, nullable=False, default=5)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Concurrent writers are detected at flush via UPDATE ... WHERE version = :read_version
    __mapper_args__ = {"version_id_col": version}


class DailyPrice(Base):
    """Per-gram metal rate for one day"""

    __tablename__ = "daily_price"
    __table_args__ = (UniqueConstraint("metal", "price_date", name="uq_daily_price_metal_date"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    metal = Column(Text, nullable=False)
    price_date = Column(Date, nullable=False, index=True)
    price_per_gram_paise = Column(BigInteger, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class Customer(Base):
    """Customer with ledger-derived running totals"""

    __tablename__ = "customer"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False, unique=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    total_purchases_paise = Column(BigInteger, nullable=False, default=0)
    total_credit_paise = Column(BigInteger, nullable=False, default=0)
    credit_limit_paise = Column(BigInteger, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}


class Sale(Base):
    """Committed sale with its computed totals"""

    __tablename__ = "sale"
    __table_args__ = (UniqueConstraint("receipt_number", name="uq_sale_receipt_number"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("customer.id"), nullable=True, index=True)
    customer_detached = Column(Boolean, nullable=False, default=False)
    receipt_number = Column(String(100), nullable=False)
    sale_type = Column(Text, nullable=False, default="inventory")  # inventory | commission | custom_order
    items_total_paise = Column(BigInteger, nullable=False)
    making_charges_paise = Column(BigInteger, nullable=False, default=0)
    wastage_paise = Column(BigInteger, nullable=False, default=0)
    additional_charges_paise = Column(BigInteger, nullable=False, default=0)
    subtotal_paise = Column(BigInteger, nullable=False)
    tax_paise = Column(BigInteger, nullable=False, default=0)
    total_paise = Column(BigInteger, nullable=False)
    making_charge_pct = Column(Numeric(5, 2), nullable=False, default=0)
    wastage_pct = Column(Numeric(5, 2), nullable=False, default=0)
    tax_pct = Column(Numeric(5, 2), nullable=False, default=0)
    commission_pct = Column(Numeric(5, 2), nullable=True)
    commission_paise = Column(BigInteger, nullable=True)
    payment_method = Column(Text, nullable=False)
    payment_status = Column(Text, nullable=False)
    cash_received_paise = Column(BigInteger, nullable=False, default=0)
    card_upi_received_paise = Column(BigInteger, nullable=False, default=0)
    credit_paise = Column(BigInteger, nullable=False, default=0)
    change_paise = Column(BigInteger, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    items = relationship("SaleItem", back_populates="sale", cascade="all, delete-orphan", order_by="SaleItem.line_number")


class SaleItem(Base):
    """Priced line of a sale"""

    __tablename__ = "sale_item"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sale_id = Column(Uuid, ForeignKey("sale.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    item_id = Column(Uuid, ForeignKey("inventory_item.id"), nullable=True)
    item_name = Column(String(255), nullable=False)
    is_custom = Column(Boolean, nullable=False, default=False)
    quantity = Column(Integer, nullable=False)
    metal = Column(Text, nullable=False)
    weight_grams = Column(Float, nullable=False)
    price_per_gram_paise = Column(BigInteger, nullable=False)
    unit_price_paise = Column(BigInteger, nullable=False)
    total_price_paise = Column(BigInteger, nullable=False)

    sale = relationship("Sale", back_populates="items")


class CreditTransaction(Base):
    """Append-only store-credit ledger entry"""

    __tablename__ = "credit_transaction"
    __table_args__ = (Index("ix_credit_transaction_due", "type", "due_date"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("customer.id"), nullable=True, index=True)
    customer_detached = Column(Boolean, nullable=False, default=False)
    sale_id = Column(Uuid, ForeignKey("sale.id"), nullable=True, index=True)
    type = Column(Text, nullable=False)  # credit | payment
    amount_paise = Column(BigInteger, nullable=False)
    balance_after_paise = Column(BigInteger, nullable=False)  # Informational only
    due_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
