"""Investment ledger for Goldfolio.

Public API:
    InvestmentEntry      - One immutable purchase record
    PortfolioSummary     - Derived totals and average cost
    Valuation            - Summary marked to a spot price
    LedgerStore          - Insert / aggregate-query storage contract
    SQLiteLedgerStore    - SQLite implementation
    Ledger               - Validating write path and aggregate reads
    create_ledger_router - FastAPI router factory for ledger endpoints
"""

from .models import InvestmentEntry, PortfolioSummary, Valuation
from .routes import create_admin_router, create_ledger_router
from .service import Ledger
from .store import LedgerStore, SQLiteLedgerStore

__all__ = [
    "InvestmentEntry",
    "PortfolioSummary",
    "Valuation",
    "LedgerStore",
    "SQLiteLedgerStore",
    "Ledger",
    "create_ledger_router",
    "create_admin_router",
]
