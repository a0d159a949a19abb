"""Customer ledger endpoints - recompute, status, payments, credit history, deletion"""

import logging
import uuid
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from jewelry_ledger.api.v1.schemas import (
    CreditEntrySchema,
    CreditHistoryResponse,
    CustomerDeletedResponse,
    CustomerStatusRequest,
    CustomerTotalsResponse,
    OverdueCreditsResponse,
    PaymentRequest,
)
from jewelry_ledger.api.dependencies import get_customer_service, get_request_id
from jewelry_ledger.domain.exceptions import (
    InvalidPaymentError,
    NotFoundError,
    TransactionConflictError,
    TransactionTimeoutError,
)
from jewelry_ledger.infrastructure.database.session import get_db
from jewelry_ledger.services.credit_ledger import CreditLedger
from jewelry_ledger.services.customers import CustomerService

router = APIRouter()


def _translate(e: Exception, request_id: str) -> HTTPException:
    """Map a domain error from a customer operation onto an HTTP error"""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvalidPaymentError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, TransactionConflictError):
        return HTTPException(status_code=409, detail="Customer was updated concurrently, please retry")
    if isinstance(e, TransactionTimeoutError):
        return HTTPException(status_code=504, detail=str(e))
    logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")


@router.post("/customers/{customer_id}/recompute", response_model=CustomerTotalsResponse)
def recompute_customer(
    customer_id: uuid.UUID,
    request: Request,
    service: CustomerService = Depends(get_customer_service),
):
    """Recompute lifetime purchases and outstanding credit from the ledgers"""
    try:
        customer = service.recompute_customer(customer_id)
    except Exception as e:
        raise _translate(e, get_request_id(request))
    return CustomerTotalsResponse.model_validate(customer)


@router.put("/customers/{customer_id}/status", response_model=CustomerTotalsResponse)
def set_customer_status(
    customer_id: uuid.UUID,
    body: CustomerStatusRequest,
    request: Request,
    service: CustomerService = Depends(get_customer_service),
):
    """Activate or deactivate a customer; deactivated customers cannot buy"""
    try:
        customer = service.set_active(customer_id, body.is_active)
    except Exception as e:
        raise _translate(e, get_request_id(request))
    return CustomerTotalsResponse.model_validate(customer)


@router.post("/customers/{customer_id}/payments", response_model=CreditEntrySchema, status_code=201)
def record_payment(
    customer_id: uuid.UUID,
    body: PaymentRequest,
    request: Request,
    service: CustomerService = Depends(get_customer_service),
):
    """Record a repayment against the customer's store credit"""
    try:
        entry = service.record_payment(customer_id, body.amount_paise, notes=body.notes)
    except Exception as e:
        raise _translate(e, get_request_id(request))
    return CreditEntrySchema.model_validate(entry)


@router.get("/customers/{customer_id}/credits", response_model=CreditHistoryResponse)
def get_credit_history(customer_id: uuid.UUID, db: Session = Depends(get_db)):
    """Ledger entries for a customer, newest first, with the recomputed balance"""
    ledger = CreditLedger(db)
    return CreditHistoryResponse(
        customer_id=customer_id,
        balance_paise=ledger.recompute_balance(customer_id),
        entries=[CreditEntrySchema.model_validate(e) for e in ledger.entries(customer_id)],
    )


@router.delete("/customers/{customer_id}", response_model=CustomerDeletedResponse)
def delete_customer(
    customer_id: uuid.UUID,
    request: Request,
    service: CustomerService = Depends(get_customer_service),
):
    """Delete a customer; their sales stay on record, detached"""
    try:
        detached = service.delete_customer(customer_id)
    except Exception as e:
        raise _translate(e, get_request_id(request))
    return CustomerDeletedResponse(customer_id=customer_id, detached_sales=detached)


@router.get("/credits/overdue", response_model=OverdueCreditsResponse)
def get_overdue_credits(
    as_of: Optional[date] = Query(None, description="Defaults to today"),
    db: Session = Depends(get_db),
):
    """Credit entries past their due date for customers who still owe"""
    as_of = as_of or date.today()
    entries = CreditLedger(db).overdue(as_of)
    return OverdueCreditsResponse(as_of=as_of, entries=[CreditEntrySchema.model_validate(e) for e in entries])
