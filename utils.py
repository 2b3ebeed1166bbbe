from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")

# One cent. Balances closer to zero than this count as settled.
EPSILON = CENT


def to_cents(amount: Decimal) -> Decimal:
    value = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    # no negative zero
    return abs(value) if value == 0 else value


def format_currency(amount: Decimal, symbol: str = "₹") -> str:
    value = to_cents(amount)
    if value < 0:
        return f"-{symbol}{abs(value)}"
    return f"{symbol}{value}"


def format_signed_currency(amount: Decimal, symbol: str = "₹") -> str:
    value = to_cents(amount)
    if value < 0:
        return f"-{symbol}{abs(value)}"
    return f"+{symbol}{value}"


def balance_status(amount: Decimal) -> str:
    if abs(amount) < EPSILON:
        return "Settled"
    if amount > 0:
        return "Gets back"
    return "Owes"


def parse_amount(amount_str: str) -> Decimal:
    cleaned = amount_str.replace(',', '.').strip()

    try:
        amount = Decimal(cleaned)
        if not amount.is_finite():
            raise ValueError("Invalid amount format")
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError("Invalid amount format")
