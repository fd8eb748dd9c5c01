# backend/wealth_engine/utils/__init__.py
"""
Utility modules for the Wealth Engine.

Cross-cutting helpers used throughout the package:
- logging: Logging configuration with operation ID support
- context: Operation ID context management
- date_utils: Calendar helpers (week starts, labels, month shifts)
- numbers: Defensive Decimal coercion and money rounding
- fx_conversion: FX rate table and currency conversion

Usage:
    from wealth_engine.utils import setup_logging, get_logger
    from wealth_engine.utils import operation_scope
    from wealth_engine.utils.fx_conversion import FxRateTable, convert
"""

from wealth_engine.utils.context import (
    get_operation_id,
    set_operation_id,
    clear_operation_id,
    operation_scope,
)
from wealth_engine.utils.logging import setup_logging, get_logger

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Context
    "get_operation_id",
    "set_operation_id",
    "clear_operation_id",
    "operation_scope",
]
