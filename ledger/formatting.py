from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


def format_currency(value) -> str:
    """BRL style: R$ 1.234,56"""
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return str(value)
    sign = "-" if amount < 0 else ""
    text = f"{abs(amount):,.2f}"  # 1,234.56
    text = text.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {text}"


def format_date(value) -> str:
    if not value:
        return ""
    try:
        if isinstance(value, datetime):
            d = value.date()
        elif isinstance(value, date):
            d = value
        elif isinstance(value, str):
            d = date.fromisoformat(value[:10])
        else:
            return str(value)
        return d.strftime('%d/%m/%Y')
    except (ValueError, TypeError):
        return str(value)
