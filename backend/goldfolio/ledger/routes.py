"""HTTP endpoints for recording and reading investments."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from ..auth import current_owner
from ..errors import PriceUnavailableError, ValidationError
from ..market.broadcaster import PriceBroadcaster
from .service import Ledger


def create_ledger_router(
    ledger: Ledger,
    broadcaster: PriceBroadcaster,
    price_source: str = "client",
) -> APIRouter:
    """Create the investment router.

    ``price_source`` decides which unit price a purchase is booked at:
    ``client`` trusts the ``pricePerOz`` the caller observed on its stream,
    ``server`` ignores it and uses the broadcaster's cached price.
    """
    router = APIRouter(prefix="/api", tags=["ledger"])

    # Sync handlers: FastAPI runs them in its threadpool, keeping SQLite I/O
    # off the event loop.

    @router.post("/invest")
    def create_investment(
        payload: dict[str, Any] = Body(...),
        owner_id: str = Depends(current_owner),
    ) -> dict:
        amount = payload.get("investmentAmount")
        if price_source == "server":
            sample = broadcaster.latest
            if sample is None:
                raise PriceUnavailableError("No gold price has been observed yet")
            price: Any = sample.value
            if amount is None:
                raise ValidationError("investmentAmount is required", field="investmentAmount")
        else:
            price = payload.get("pricePerOz")
            if amount is None or price is None:
                raise ValidationError("investmentAmount and pricePerOz are required")

        entry = ledger.record(owner_id, amount, price)
        return {
            "id": entry.id,
            "goldAmount": float(entry.quantity),
            "investmentAmount": float(entry.cash_amount),
        }

    @router.get("/investments")
    def list_investments(owner_id: str = Depends(current_owner)) -> list[dict]:
        return [entry.to_dict() for entry in ledger.list_entries(owner_id)]

    @router.get("/portfolio")
    def get_portfolio(owner_id: str = Depends(current_owner)) -> dict:
        return ledger.summarize(owner_id).to_dict()

    @router.get("/portfolio/valuation")
    def get_valuation(owner_id: str = Depends(current_owner)) -> dict:
        """Summary marked to the latest cached price."""
        sample = broadcaster.latest
        if sample is None:
            raise PriceUnavailableError("No gold price has been observed yet")
        summary = ledger.summarize(owner_id)
        valuation = summary.valuation(sample.value)
        return {
            **summary.to_dict(),
            "price": sample.value,
            "currentValue": float(valuation.current_value),
            "profitLoss": float(valuation.profit_loss),
            "profitLossPercent": float(valuation.profit_loss_percent),
        }

    return router


def create_admin_router(ledger: Ledger) -> APIRouter:
    """Read-only cross-owner listing for development. Not mounted by default."""
    router = APIRouter(prefix="/api/admin", tags=["admin"])

    @router.get("/investments")
    def list_all_investments() -> list[dict]:
        return [entry.to_dict() for entry in ledger.list_all()]

    return router
