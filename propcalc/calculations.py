"""
calculations.py - financial figures derived from property records

Pure functions used by the calculator view, the journal expansion and the
printable reports:
  total_revenue, management_fee, total_expenses, owner_payout (per property)
  portfolio_stats, profit_and_loss (across the property list)

Every field goes through to_number() before arithmetic, so the functions are
total: they never raise on malformed values.
"""

import datetime
from typing import Any, Dict, Iterable, List, Optional

from propcalc.coercion import to_number
from propcalc.models import Property

CURRENCY_SYMBOL = "$"


def expenses_sum(prop: Property) -> float:
    """Sum of the property's expense amounts (zero and unparsable amounts count as 0)."""
    return sum((to_number(e.amount) for e in prop.expenses), 0.0)


def total_revenue(prop: Property) -> float:
    return to_number(prop.rent) + to_number(prop.convenience_fee)


def management_fee(prop: Property) -> float:
    return to_number(prop.rent) * to_number(prop.management_fee_percentage) / 100


def total_expenses(prop: Property) -> float:
    """Expenses + management fee + the convenience fee that is passed through."""
    return expenses_sum(prop) + management_fee(prop) + to_number(prop.convenience_fee)


def owner_payout(prop: Property) -> float:
    """
    Net amount due to the owner.

    The convenience fee is added and subtracted again: it is collected in full
    and expensed, so it never reaches the owner. Keep the terms in this order
    so the figure matches the journal lines built from the same parts.
    """
    return (
        to_number(prop.rent)
        + to_number(prop.convenience_fee)
        - management_fee(prop)
        - to_number(prop.convenience_fee)
        - expenses_sum(prop)
    )


def format_currency(amount: float) -> str:
    """Format as US dollars: 1234.5 -> "$1,234.50", -12 -> "-$12.00"."""
    amount = to_number(amount)
    sign = "-" if amount < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{abs(amount):,.2f}"


def portfolio_stats(properties: Iterable[Property]) -> Dict[str, float]:
    """
    Headline numbers for the database view.

    Returns:
        { "count", "total_rent", "total_expenses", "net_income" }
    net_income is total rent minus total expenses (convenience fees included
    on the expense side only), as the statistics panel has always shown it.
    """
    props = list(properties)
    total_rent = sum((to_number(p.rent) for p in props), 0.0)
    expenses_total = sum((total_expenses(p) for p in props), 0.0)
    return {
        "count": len(props),
        "total_rent": total_rent,
        "total_expenses": expenses_total,
        "net_income": total_rent - expenses_total,
    }


def _parse_iso(value: Any) -> Optional[datetime.date]:
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value or "").strip())
    except ValueError:
        return None


def date_range_for(properties: Iterable[Property], name: str):
    """
    Earliest and latest payment date recorded for a property name.
    Returns (start_iso, end_iso) or (None, None) when nothing matches.
    """
    dates = sorted(p.payment_date for p in properties if p.name == name and p.payment_date)
    if not dates:
        return None, None
    return dates[0], dates[-1]


def profit_and_loss(properties: Iterable[Property], name: str, start: Any, end: Any) -> Dict[str, Any]:
    """
    Aggregate one property's records over an inclusive payment-date range.

    start/end may be ISO strings or datetime.date. Records with an unparsable
    payment date are skipped.

    Returns a dict with the summed rent, convenience_fee, management_fee,
    expenses, total_revenue, total_expenses and net_income, the matched
    records under "properties", and "expense_categories":
        { description: {"total": float, "entries": [{"date", "amount"}, ...]} }
    """
    start_d = _parse_iso(start)
    end_d = _parse_iso(end)
    matched: List[Property] = []
    for p in properties:
        if p.name != name:
            continue
        d = _parse_iso(p.payment_date)
        if d is None:
            continue
        if start_d is not None and d < start_d:
            continue
        if end_d is not None and d > end_d:
            continue
        matched.append(p)

    categories: Dict[str, Dict[str, Any]] = {}
    for p in matched:
        for e in p.expenses:
            amount = to_number(e.amount)
            if amount <= 0:
                continue
            bucket = categories.setdefault(e.description, {"total": 0.0, "entries": []})
            bucket["total"] += amount
            bucket["entries"].append({"date": p.payment_date, "amount": amount})

    return {
        "properties": matched,
        "rent": sum((to_number(p.rent) for p in matched), 0.0),
        "convenience_fee": sum((to_number(p.convenience_fee) for p in matched), 0.0),
        "management_fee": sum((management_fee(p) for p in matched), 0.0),
        "expenses": sum((expenses_sum(p) for p in matched), 0.0),
        "total_revenue": sum((total_revenue(p) for p in matched), 0.0),
        "total_expenses": sum((total_expenses(p) for p in matched), 0.0),
        "net_income": sum((owner_payout(p) for p in matched), 0.0),
        "expense_categories": categories,
    }
