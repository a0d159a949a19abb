"""POST /v1/sales - submit a sale; GET /v1/sales - sale history"""

import logging
import uuid
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from jewelry_ledger.api.v1.schemas import SaleCreateRequest, SaleListResponse, SaleResponse
from jewelry_ledger.api.dependencies import get_request_id, get_sale_engine
from jewelry_ledger.config import settings
from jewelry_ledger.infrastructure.database.session import get_db
from jewelry_ledger.infrastructure.database.repositories import SaleRepository
from jewelry_ledger.services.sale_engine import SaleTransactionEngine
from jewelry_ledger.domain.exceptions import (
    InsufficientStockError,
    InvalidSaleRequestError,
    NotFoundError,
    PricingUnavailableError,
    TransactionConflictError,
    TransactionTimeoutError,
)

router = APIRouter()


@router.post("/sales", response_model=SaleResponse, status_code=201)
def submit_sale(
    request_body: SaleCreateRequest,
    request: Request,
    engine: SaleTransactionEngine = Depends(get_sale_engine),
):
    """
    Price and book a sale atomically.

    Flow:
    1. Read metal rates, stock rows and the customer's ledger snapshot
    2. Compute line prices, tax, payment status and receipt number
    3. Write sale, items, stock decrements, credit entry, customer totals
    4. Commit, retrying from step 1 on concurrent conflicts
    """
    request_id = get_request_id(request)

    try:
        sale = engine.submit_sale(request_body.to_domain())
        return SaleResponse.model_validate(sale)

    except InvalidSaleRequestError as e:
        logging.warning(f"Invalid sale: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except NotFoundError as e:
        logging.warning(f"Unknown reference: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))

    except InsufficientStockError as e:
        logging.warning(f"Insufficient stock: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=e.as_detail())

    except TransactionConflictError as e:
        logging.warning(f"Sale conflict: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail="Sale conflicted with concurrent updates, please resubmit")

    except PricingUnavailableError as e:
        logging.error(f"Pricing unavailable: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail=str(e))

    except TransactionTimeoutError as e:
        logging.warning(f"Sale timed out: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=504, detail="Sale did not complete in time, nothing was recorded")

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/sales/{sale_id}", response_model=SaleResponse)
def get_sale(sale_id: uuid.UUID, db: Session = Depends(get_db)):
    """Retrieve a committed sale with its line items"""
    sale = SaleRepository(db).get_sale(sale_id)
    if not sale:
        raise HTTPException(status_code=404, detail="Sale not found")
    return SaleResponse.model_validate(sale)


@router.get("/sales", response_model=SaleListResponse)
def list_sales(
    customer_id: Optional[uuid.UUID] = Query(None, description="Filter by customer"),
    limit: int = Query(settings.recent_sales_limit, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Most recent sales, newest first"""
    sales = SaleRepository(db).get_recent_sales(customer_id=customer_id, limit=limit)
    return SaleListResponse(sales=[SaleResponse.model_validate(s) for s in sales])
