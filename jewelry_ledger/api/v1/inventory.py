"""GET /v1/inventory/low-stock - items at or below their minimum level"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from jewelry_ledger.api.v1.schemas import InventoryItemSchema, LowStockResponse
from jewelry_ledger.infrastructure.database.session import get_db
from jewelry_ledger.services.inventory_ledger import InventoryLedger

router = APIRouter()


@router.get("/inventory/low-stock", response_model=LowStockResponse)
def get_low_stock(db: Session = Depends(get_db)):
    items = InventoryLedger(db).low_stock()
    return LowStockResponse(items=[InventoryItemSchema.model_validate(item) for item in items])
