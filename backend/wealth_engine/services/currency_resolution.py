# backend/wealth_engine/services/currency_resolution.py
"""
Trading currency resolution for instrument symbols.

Holdings normally carry their currency explicitly. When they don't (or when a
legacy record stored the portfolio currency by mistake), the currency is
inferred from the Yahoo-style exchange suffix of the symbol.

The lookup is a static ordered table of (pattern, currency) pairs; the first
match wins and anything unmatched resolves to USD, so the lookup is total.

Usage:
    from wealth_engine.services.currency_resolution import resolve_currency

    resolve_currency(None, "VOD.L")     # "GBP"
    resolve_currency("EUR", "VOD.L")    # "EUR" (explicit metadata wins)
    resolve_currency(None, "AAPL")      # "USD"
"""

import re

DEFAULT_CURRENCY = "USD"

# Order matters: crypto pairs quoted in USD first, then exchange suffixes.
# ".TO" is listed before ".T" for readability; the anchored patterns cannot
# collide anyway.
CURRENCY_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"USD"), "USD"),           # BTC-USD, ETH-USD, USDC
    (re.compile(r"\.L$"), "GBP"),          # London
    (re.compile(r"\.TO$"), "CAD"),         # Toronto
    (re.compile(r"\.T$"), "JPY"),          # Tokyo
    (re.compile(r"\.AX$"), "AUD"),         # Australia
    (re.compile(r"\.HK$"), "HKD"),         # Hong Kong
    (re.compile(r"\.SI$"), "SGD"),         # Singapore
    (re.compile(r"\.PA$"), "EUR"),         # Paris
    (re.compile(r"\.DE$"), "EUR"),         # Xetra
    (re.compile(r"\.SW$"), "CHF"),         # SIX Swiss
    (re.compile(r"\.MI$"), "EUR"),         # Milan
    (re.compile(r"\.AS$"), "EUR"),         # Amsterdam
    (re.compile(r"\.BR$"), "EUR"),         # Brussels
    (re.compile(r"\.LS$"), "EUR"),         # Lisbon
    (re.compile(r"\.MC$"), "EUR"),         # Madrid
    (re.compile(r"\.CO$"), "DKK"),         # Copenhagen
    (re.compile(r"\.ST$"), "SEK"),         # Stockholm
    (re.compile(r"\.OL$"), "NOK"),         # Oslo
    (re.compile(r"\.HE$"), "EUR"),         # Helsinki
    (re.compile(r"\.IC$"), "ISK"),         # Iceland
    (re.compile(r"\.SA$"), "BRL"),         # Sao Paulo
    (re.compile(r"\.MX$"), "MXN"),         # Mexico
    (re.compile(r"\.KS$"), "KRW"),         # Korea
    (re.compile(r"\.KQ$"), "KRW"),         # KOSDAQ
    (re.compile(r"\.TW$"), "TWD"),         # Taiwan
    (re.compile(r"\.SS$"), "CNY"),         # Shanghai
    (re.compile(r"\.SZ$"), "CNY"),         # Shenzhen
    (re.compile(r"\.NS$"), "INR"),         # NSE India
    (re.compile(r"\.BO$"), "INR"),         # Bombay
)


def infer_currency(symbol: str | None) -> str:
    """
    Infer the trading currency of a symbol from its suffix.

    Args:
        symbol: Yahoo-style symbol (case-insensitive)

    Returns:
        ISO currency code; USD when nothing matches
    """
    if not symbol:
        return DEFAULT_CURRENCY

    normalized = symbol.strip().upper()
    for pattern, currency in CURRENCY_PATTERNS:
        if pattern.search(normalized):
            return currency
    return DEFAULT_CURRENCY


def resolve_currency(explicit: str | None, symbol: str | None) -> str:
    """
    Resolve a holding's currency: explicit metadata first, else inference.

    Args:
        explicit: Currency stored on the holding, if any
        symbol: Instrument symbol used for inference

    Returns:
        Upper-case ISO currency code
    """
    if explicit and explicit.strip():
        return explicit.strip().upper()
    return infer_currency(symbol)
