# backend/wealth_engine/__init__.py
"""
Wealth Engine: portfolio valuation and net worth history.

Packages:
- services.valuation: lot ledger, holdings valuation, holdings value history
- services.networth: net worth reconstruction and time-bucket aggregation
- services.market_data: quote providers and the quote cache
- services.state: portfolio store, persistence and legacy migration
- utils: FX conversion, dates, numbers, logging
"""

__version__ = "0.1.0"
