"""PUT/GET /v1/prices/{metal} - daily metal rates"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jewelry_ledger.api.v1.schemas import PriceResponse, PriceSetRequest
from jewelry_ledger.api.dependencies import get_price_oracle
from jewelry_ledger.domain.exceptions import InvalidPriceError, TransactionConflictError
from jewelry_ledger.domain.models import Metal
from jewelry_ledger.infrastructure.database.session import get_db
from jewelry_ledger.infrastructure.database.transactions import CONFLICT_ERRORS, run_in_transaction
from jewelry_ledger.services.price_oracle import PriceOracle

router = APIRouter()


@router.put("/prices/{metal}", response_model=PriceResponse)
def set_daily_price(
    metal: Metal,
    body: PriceSetRequest,
    db: Session = Depends(get_db),
    oracle: PriceOracle = Depends(get_price_oracle),
):
    """Set the per-gram rate for a day; repeated calls the same day overwrite"""
    price_date = body.price_date or date.today()
    try:
        # Two same-day upserts racing on the unique (metal, date) key: the loser retries as an update
        record = run_in_transaction(
            db,
            lambda: oracle.set_price(metal, body.price_per_gram_paise, price_date),
            operation="set_daily_price",
            attempts=2,
            retry_on=CONFLICT_ERRORS + (IntegrityError,),
        )
    except InvalidPriceError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except TransactionConflictError:
        raise HTTPException(status_code=409, detail="Price was updated concurrently, please retry")

    return PriceResponse(metal=metal, as_of=price_date, price_per_gram_paise=record.price_per_gram_paise)


@router.get("/prices/{metal}", response_model=PriceResponse)
def get_price(
    metal: Metal,
    as_of: Optional[date] = Query(None, description="Defaults to today"),
    oracle: PriceOracle = Depends(get_price_oracle),
):
    """Rate in effect on a date, falling back to earlier days and built-in defaults"""
    as_of = as_of or date.today()
    return PriceResponse(metal=metal, as_of=as_of, price_per_gram_paise=oracle.get_price(metal, as_of))
