from decimal import Decimal, ROUND_HALF_UP

from app.core.utils import to_decimal

# code -> (symbol, decimals)
CURRENCIES = {
    "USD": ("$", 2),
    "EUR": ("€", 2),
    "GBP": ("£", 2),
    "JPY": ("¥", 0),
    "AUD": ("A$", 2),
    "CAD": ("C$", 2),
    "CHF": ("CHF ", 2),
    "CNY": ("¥", 2),
    "INR": ("₹", 2),
    "BRL": ("R$", 2),
    "MXN": ("MX$", 2),
    "KRW": ("₩", 0),
    "SGD": ("S$", 2),
    "HKD": ("HK$", 2),
    "NOK": ("kr ", 2),
    "SEK": ("kr ", 2),
    "DKK": ("kr ", 2),
    "PLN": ("zł ", 2),
    "RUB": ("₽", 2),
    "TRY": ("₺", 2),
    "ZAR": ("R", 2),
    "NZD": ("NZ$", 2),
    "THB": ("฿", 2),
    "IDR": ("Rp", 0),
    "PHP": ("₱", 2),
    "VND": ("₫", 0),
}


def currency_symbol(code: str) -> str:
    code = (code or "").upper()
    if code in CURRENCIES:
        return CURRENCIES[code][0]
    return f"{code} "


def format_money(amount, code: str) -> str:
    """Formats the absolute value of amount, e.g. 12.5 / USD -> "$12.50"."""
    code = (code or "").upper()
    decimals = CURRENCIES.get(code, (None, 2))[1]
    value = abs(to_decimal(amount)).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
    return f"{currency_symbol(code)}{value:.{decimals}f}"
