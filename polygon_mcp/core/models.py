"""Pydantic models for Polygon quotes and stock price lookups."""

from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# ints stay ints so a volume of 1000 serialises as 1000, not 1000.0
Number = Union[int, float]


def utc_now_iso() -> str:
    """Current wall-clock time as an ISO-8601 string, e.g. 2024-01-05T14:30:00.123Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PolygonStockResponse(BaseModel):
    """Quote payload as returned by the Polygon last-trade and open-close endpoints."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: Optional[str] = None
    from_: Optional[str] = Field(None, alias="from")
    symbol: Optional[str] = None
    open: Optional[Number] = None
    high: Optional[Number] = None
    low: Optional[Number] = None
    close: Optional[Number] = None
    volume: Optional[Number] = None
    after_hours: Optional[Number] = Field(None, alias="afterHours")
    pre_market: Optional[Number] = Field(None, alias="preMarket")


class StockData(BaseModel):
    """Canonical stock price snapshot returned to MCP clients."""

    symbol: Optional[str] = Field(None, description="Ticker symbol")
    price: Optional[Number] = Field(None, description="Closing price reported by Polygon")
    open: Optional[Number] = Field(None, description="Opening price")
    high: Optional[Number] = Field(None, description="Session high")
    low: Optional[Number] = Field(None, description="Session low")
    volume: Optional[Number] = Field(None, description="Traded volume")
    timestamp: str = Field(..., description="Quote date, or the lookup time when Polygon gives none")

    @classmethod
    def from_quote(cls, quote: PolygonStockResponse, use_quote_date: bool = True) -> "StockData":
        timestamp = quote.from_ if use_quote_date and quote.from_ else utc_now_iso()
        return cls(
            symbol=quote.symbol,
            price=quote.close,
            open=quote.open,
            high=quote.high,
            low=quote.low,
            volume=quote.volume,
            timestamp=timestamp,
        )

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, exclude_none=True)


class StockPriceArgs(BaseModel):
    """Validated arguments of the get_stock_price tool."""

    symbol: str
    date: Optional[str] = None


class ArgsValidationError(BaseModel):
    """Why a get_stock_price argument payload was rejected."""

    reason: str


def parse_stock_price_args(arguments: Any) -> Union[StockPriceArgs, ArgsValidationError]:
    """Shape-check untyped tool arguments.

    Only types are checked: symbol must be a string and date, when the key
    is present, must be a string. Date formats are left for Polygon to reject.
    """
    if not isinstance(arguments, dict):
        return ArgsValidationError(reason="arguments must be an object")

    symbol = arguments.get("symbol")
    if not isinstance(symbol, str):
        return ArgsValidationError(reason="symbol must be a string")

    # an explicit null date is rejected; only an absent key means "latest"
    if "date" in arguments and not isinstance(arguments["date"], str):
        return ArgsValidationError(reason="date must be a string")

    return StockPriceArgs(symbol=symbol, date=arguments.get("date"))
