"""Currency utilities: static conversion so discovery prices stay in the requested currency."""

# Static exchange rates to USD (can be updated periodically)
EXCHANGE_RATES_TO_USD: dict[str, float] = {
    "USD": 1.0,
    "EUR": 1.08,
    "PLN": 0.25,
    "GBP": 1.27,
    "CHF": 1.13,
    "CZK": 0.043,
    "HUF": 0.0028,
    "DKK": 0.145,
    "NOK": 0.094,
    "SEK": 0.095,
    "RON": 0.22,
    "BGN": 0.55,
    "ISK": 0.0072,
    "TRY": 0.031,
    "CAD": 0.74,
    "AED": 0.27,
}

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$", "EUR": "€", "GBP": "£", "PLN": "zł",
    "CHF": "CHF ", "CZK": "Kč", "CAD": "CA$",
}


def is_supported(currency: str) -> bool:
    return currency.upper() in EXCHANGE_RATES_TO_USD


def convert(amount: float, from_currency: str, to_currency: str) -> float:
    """Convert between two currencies through USD.

    Raises KeyError for currencies missing from the rate table.
    """
    from_currency = from_currency.upper()
    to_currency = to_currency.upper()
    if from_currency == to_currency:
        return round(amount, 2)
    usd = amount * EXCHANGE_RATES_TO_USD[from_currency]
    return round(usd / EXCHANGE_RATES_TO_USD[to_currency], 2)


def format_price(amount: float, currency: str = "PLN") -> str:
    """Format a price with currency symbol for display."""
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol is None:
        return f"{round(amount):,} {currency}"
    if currency == "PLN":
        return f"{round(amount):,} {symbol}"
    return f"{symbol}{round(amount):,}"
