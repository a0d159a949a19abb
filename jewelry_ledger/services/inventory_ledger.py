"""Inventory stock ledger with conditional decrement"""

import uuid
from typing import List, Optional
from sqlalchemy.orm import Session

from jewelry_ledger.domain.exceptions import InsufficientStockError, InvalidInventoryError, NotFoundError
from jewelry_ledger.domain.models import Category, Metal, StockSnapshot
from jewelry_ledger.infrastructure.database.models import InventoryItem
from jewelry_ledger.infrastructure.database.repositories import InventoryRepository


def derive_total_weight(quantity: int, weight_per_piece: float) -> float:
    return round(quantity * weight_per_piece, 3)


class InventoryLedger:
    """Per-item stock counts; all mutations keep total_weight derived"""

    def __init__(self, db: Session):
        self.repo = InventoryRepository(db)

    def _load(self, item_id: uuid.UUID) -> InventoryItem:
        item = self.repo.get_item(item_id)
        if item is None:
            raise NotFoundError("Inventory item", item_id)
        return item

    def peek(self, item_id: uuid.UUID) -> StockSnapshot:
        """Read-only snapshot for pricing and decisions"""
        item = self._load(item_id)
        return StockSnapshot(
            item_id=item.id,
            name=item.name,
            material=Metal(item.material),
            quantity=item.quantity,
            weight_per_piece=item.weight_per_piece,
            min_stock_level=item.min_stock_level,
        )

    def conditional_decrement(self, item_id: uuid.UUID, qty: int) -> InventoryItem:
        """
        Decrement stock inside the enclosing transaction.

        The row is the one read earlier in this transaction (identity map),
        and its version counter is checked at flush, so a concurrent sale
        that committed in between turns this write into a StaleDataError
        instead of an oversell.

        Raises:
            InsufficientStockError: quantity < qty (the whole sale aborts)
        """
        item = self._load(item_id)
        if item.quantity < qty:
            raise InsufficientStockError(item.id, requested=qty, available=item.quantity, item_name=item.name)

        item.quantity -= qty
        item.total_weight = derive_total_weight(item.quantity, item.weight_per_piece)
        return item

    def add_item(
        self,
        sku: str,
        name: str,
        material: Metal,
        weight_per_piece: float,
        quantity: int = 0,
        category: Category = Category.OTHER,
        min_stock_level: int = 5,
    ) -> InventoryItem:
        """Catalog entry"""
        if quantity < 0 or weight_per_piece < 0:
            raise InvalidInventoryError("Quantity and weight must not be negative")
        return self.repo.create_item(
            sku=sku,
            name=name,
            material=material.value,
            weight_per_piece=weight_per_piece,
            quantity=quantity,
            category=category.value,
            min_stock_level=min_stock_level,
        )

    def adjust_stock(
        self,
        item_id: uuid.UUID,
        quantity: Optional[int] = None,
        weight_per_piece: Optional[float] = None,
    ) -> InventoryItem:
        """Manual edit of stock count and/or piece weight"""
        item = self._load(item_id)
        if quantity is not None:
            if quantity < 0:
                raise InvalidInventoryError("Stock quantity cannot be negative")
            item.quantity = quantity
        if weight_per_piece is not None:
            if weight_per_piece < 0:
                raise InvalidInventoryError("Weight per piece cannot be negative")
            item.weight_per_piece = weight_per_piece
        item.total_weight = derive_total_weight(item.quantity, item.weight_per_piece)
        return item

    def low_stock(self) -> List[InventoryItem]:
        """Items at or below their minimum stock level"""
        return self.repo.get_low_stock()
