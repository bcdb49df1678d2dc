"""Market data API — gold/currency prices and business news."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from bizdesk.api.deps import get_market_client
from bizdesk.schemas.catalog import PricesRead
from bizdesk.services.market_data import MarketDataClient, MarketDataError

router = APIRouter(prefix="/market")


@router.get("/prices", response_model=PricesRead)
async def prices(client: MarketDataClient = Depends(get_market_client)):
    try:
        return await client.prices()
    except MarketDataError:
        raise HTTPException(status_code=502, detail="Could not fetch market prices")


@router.get("/news")
async def news(client: MarketDataClient = Depends(get_market_client)) -> list[Any]:
    try:
        return await client.news()
    except MarketDataError:
        raise HTTPException(status_code=502, detail="Could not fetch news")
