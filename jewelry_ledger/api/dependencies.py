"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from jewelry_ledger.infrastructure.database.session import get_db
from jewelry_ledger.services.customers import CustomerService
from jewelry_ledger.services.price_oracle import PriceOracle
from jewelry_ledger.services.sale_engine import SaleTransactionEngine


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_sale_engine(db: Session = Depends(get_db)) -> SaleTransactionEngine:
    """Provide a sale engine bound to the request's session"""
    return SaleTransactionEngine(db)


def get_customer_service(db: Session = Depends(get_db)) -> CustomerService:
    return CustomerService(db)


def get_price_oracle(db: Session = Depends(get_db)) -> PriceOracle:
    return PriceOracle(db)
