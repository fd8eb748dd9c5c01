# backend/wealth_engine/schemas/__init__.py
"""
Pydantic schemas for the stored portfolio documents.

- state: v1 and v2 document models with to_domain() / from_domain()
- validators: Reusable normalizers (amounts, lot dates, currency, symbol)

Usage:
    from wealth_engine.schemas import PortfolioStateDocument

    state = PortfolioStateDocument.model_validate(raw).to_domain()
"""

from wealth_engine.schemas.state import (
    CashEventDocument,
    HoldingDocument,
    LegacyStateDocument,
    LotDocument,
    PortfolioDocument,
    PortfolioStateDocument,
)

__all__ = [
    "LotDocument",
    "HoldingDocument",
    "CashEventDocument",
    "PortfolioDocument",
    "PortfolioStateDocument",
    "LegacyStateDocument",
]
