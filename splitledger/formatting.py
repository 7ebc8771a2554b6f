"""
Display formatting for ledger results.

The ledger itself is currency-agnostic; the currency symbol only
appears here, taken from AppSettings.display_currency.
"""

from typing import Optional

from splitledger.config import get_settings
from splitledger.models.ledger import NetBalance, TransferInstruction


def format_amount(amount: float, currency: Optional[str] = None) -> str:
    """Format an amount with the display currency, e.g. '₹1,250.50'."""
    settings = get_settings().app
    symbol = currency if currency is not None else settings.display_currency
    precision = settings.currency_precision
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.{precision}f}"


def describe_transfer(
    transfer: TransferInstruction,
    currency: Optional[str] = None,
) -> str:
    """'Bob pays Alice ₹100.00'"""
    payer = transfer.from_member_name or transfer.from_member_id
    payee = transfer.to_member_name or transfer.to_member_id
    return f"{payer} pays {payee} {format_amount(transfer.amount, currency)}"


def describe_balance(
    balance: NetBalance,
    currency: Optional[str] = None,
) -> str:
    """'Alice is owed ₹200.00', 'Bob owes ₹100.00' or 'Carol is settled up'."""
    name = balance.member_name or balance.member_id
    if balance.is_settled(get_settings().app.settled_tolerance):
        return f"{name} is settled up"
    if balance.amount > 0:
        return f"{name} is owed {format_amount(balance.amount, currency)}"
    return f"{name} owes {format_amount(-balance.amount, currency)}"
