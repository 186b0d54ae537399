"""
report.py - printable HTML reports

Self-contained HTML documents for a single property record and for a
property's profit & loss over a date range. The UI offers them as downloads;
the figures come from propcalc.calculations.
"""

import datetime
from html import escape
from typing import Any, Dict, List, Optional, Tuple

from propcalc.calculations import (
    format_currency,
    management_fee,
    owner_payout,
    total_expenses,
    total_revenue,
)
from propcalc.coercion import to_number
from propcalc.journal import format_date
from propcalc.models import Property

_STYLE = """
body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 800px; margin: 0 auto; padding: 20px; }
h1 { color: #2c3e50; border-bottom: 2px solid #eee; padding-bottom: 10px; }
h2 { color: #3498db; margin-top: 25px; padding-bottom: 5px; border-bottom: 1px solid #eee; }
table { width: 100%; border-collapse: collapse; margin-bottom: 20px; }
td { padding: 4px 0; }
td.amount { text-align: right; width: 30%; }
td.detail { padding-left: 20px; color: #555; }
tr.section-total { font-weight: bold; border-top: 1px solid #ddd; }
.footer { margin-top: 30px; font-size: 0.9em; text-align: center; color: #7f8c8d; }
@media print { .no-print { display: none; } body { padding: 0; } }
"""


def _rows(rows: List[Tuple[str, float]], total: Optional[Tuple[str, float]] = None) -> str:
    out = ["<table>"]
    for label, amount in rows:
        out.append(f'<tr><td>{escape(label)}</td><td class="amount">{format_currency(amount)}</td></tr>')
    if total is not None:
        out.append(
            f'<tr class="section-total"><td>{escape(total[0])}</td>'
            f'<td class="amount">{format_currency(total[1])}</td></tr>'
        )
    out.append("</table>")
    return "\n".join(out)


def _document(title: str, body: str, generated_on: Optional[datetime.date]) -> str:
    generated_on = generated_on or datetime.date.today()
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n<head>\n<meta charset="UTF-8">\n'
        f"<title>{escape(title)}</title>\n<style>{_STYLE}</style>\n</head>\n<body>\n"
        '<div class="no-print"><button onclick="window.print()">Print Report</button></div>\n'
        f"<h1>{escape(title)}</h1>\n{body}\n"
        f'<div class="footer">Report generated on {generated_on.strftime("%m/%d/%Y")}</div>\n'
        "</body>\n</html>\n"
    )


def render_property_report(prop: Property, generated_on: Optional[datetime.date] = None) -> str:
    """Revenue, expenses and owner payout for one property record."""
    pct = to_number(prop.management_fee_percentage)
    expense_rows = [
        (f"Management Fee ({pct:g}%)", management_fee(prop)),
        ("Convenience Fee", to_number(prop.convenience_fee)),
    ]
    expense_rows += [(e.description, to_number(e.amount)) for e in prop.expenses if to_number(e.amount) > 0]

    body = "\n".join([
        f"<p><strong>Payment Date:</strong> {escape(format_date(prop.payment_date))}</p>",
        "<h2>Revenue</h2>",
        _rows(
            [("Rent", to_number(prop.rent)), ("Convenience Fee", to_number(prop.convenience_fee))],
            total=("Total Revenue", total_revenue(prop)),
        ),
        "<h2>Expenses</h2>",
        _rows(expense_rows, total=("Total Expenses", total_expenses(prop))),
        "<h2>Net Income</h2>",
        _rows([], total=("Owner Payout", owner_payout(prop))),
    ])
    return _document(f"{prop.name} - Property Report", body, generated_on)


def render_pl_report(
    name: str,
    pl: Dict[str, Any],
    start: str,
    end: str,
    generated_on: Optional[datetime.date] = None,
) -> str:
    """
    Profit & loss document for the output of calculations.profit_and_loss().
    Expense categories are listed with their individual dated amounts.
    """
    detail = []
    for category, bucket in sorted(pl.get("expense_categories", {}).items()):
        detail.append((category, bucket["total"]))
        for item in bucket["entries"]:
            detail.append((f"    {format_date(item['date'])}", item["amount"]))

    expense_table = ["<table>"]
    for label, amount in detail:
        css = ' class="detail"' if label.startswith("    ") else ""
        expense_table.append(
            f'<tr><td{css}>{escape(label.strip())}</td><td class="amount">{format_currency(amount)}</td></tr>'
        )
    expense_table.append(
        f'<tr class="section-total"><td>Total Expenses</td>'
        f'<td class="amount">{format_currency(pl.get("total_expenses", 0.0))}</td></tr>'
    )
    expense_table.append("</table>")

    body = "\n".join([
        f"<p><strong>Period:</strong> {escape(format_date(start))} to {escape(format_date(end))}</p>",
        f"<p><strong>Records:</strong> {len(pl.get('properties', []))}</p>",
        "<h2>Revenue</h2>",
        _rows(
            [("Rent", pl.get("rent", 0.0)), ("Convenience Fee", pl.get("convenience_fee", 0.0))],
            total=("Total Revenue", pl.get("total_revenue", 0.0)),
        ),
        "<h2>Expenses</h2>",
        _rows([
            ("Management Fees", pl.get("management_fee", 0.0)),
            ("Convenience Fees", pl.get("convenience_fee", 0.0)),
        ]),
        "\n".join(expense_table),
        "<h2>Net Income</h2>",
        _rows([], total=("Owner Payout", pl.get("net_income", 0.0))),
    ])
    return _document(f"{name} - P&L Report", body, generated_on)
