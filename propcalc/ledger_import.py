"""
ledger_import.py - rebuild properties from a tab-delimited journal file

The file has a header row and one journal line per row:
    Date  Account  Description  Debit  Credit  Class
("Journal Date", "Debits" and "Credits" are accepted as column names too).

Rows are grouped by Class (the property name) and the known accounts are
mapped back onto property fields. The imported rows themselves become the
journal unchanged.
"""

import datetime
from typing import Dict, List

from propcalc.coercion import to_number
from propcalc.journal import MANAGEMENT_FEES, RENT_REVENUE, RENT_REVENUE_CONV_FEE, REPAIRS
from propcalc.models import Expense, JournalEntry, Property, new_import_id

COLUMN_ALIASES = {
    "Journal Date": "Date",
    "Debits": "Debit",
    "Credits": "Credit",
}


class LedgerImportError(ValueError):
    """Raised when the ledger text has no header or no journal rows."""


def parse_ledger(text: str) -> List[Dict[str, str]]:
    """
    Split tab-delimited text into one dict per row keyed by header name.
    Blank lines are skipped; short rows are padded with "".
    """
    lines = [line.rstrip("\r") for line in (text or "").split("\n")]
    if not lines or not lines[0].strip():
        raise LedgerImportError("Ledger file has no header row")
    headers = [h.strip() for h in lines[0].split("\t")]
    headers = [COLUMN_ALIASES.get(h, h) for h in headers]

    rows: List[Dict[str, str]] = []
    for line in lines[1:]:
        if not line.strip():
            continue
        values = line.split("\t")
        row = {}
        for idx, header in enumerate(headers):
            if not header:
                continue
            row[header] = values[idx].strip() if idx < len(values) else ""
        rows.append(row)
    return rows


def rows_to_entries(rows: List[Dict[str, str]]) -> List[JournalEntry]:
    return [JournalEntry.from_dict(r) for r in rows]


def _iso_from_journal_date(value: str) -> str:
    # journal rows carry MM/DD/YYYY; properties store ISO dates
    try:
        return datetime.datetime.strptime(value.strip(), "%m/%d/%Y").date().isoformat()
    except ValueError:
        return value


def reconstruct_properties(entries: List[JournalEntry]) -> List[Property]:
    """
    Reverse-aggregate journal lines into one Property per Class, in the order
    the classes first appear. Every row with a non-empty Class is processed;
    unknown accounts are ignored.
    """
    by_name: Dict[str, Property] = {}
    for entry in entries:
        name = entry.class_name
        if not name:
            continue
        prop = by_name.get(name)
        if prop is None:
            prop = Property(
                id=new_import_id(),
                name=name,
                payment_date=_iso_from_journal_date(entry.date),
            )
            by_name[name] = prop

        if entry.account == RENT_REVENUE:
            prop.rent += to_number(entry.credit)
        elif entry.account == RENT_REVENUE_CONV_FEE:
            prop.convenience_fee += to_number(entry.credit)
        elif entry.account == MANAGEMENT_FEES:
            # first fee line wins; needs the rent line to have been seen
            if prop.management_fee_percentage == 0 and prop.rent != 0:
                prop.management_fee_percentage = to_number(entry.debit) / prop.rent * 100
        elif entry.account == REPAIRS:
            prop.expenses.append(
                Expense(
                    amount=to_number(entry.debit),
                    description=entry.description.split(" for ")[0],
                )
            )
    return list(by_name.values())


def import_ledger(text: str):
    """
    Parse ledger text. Returns (properties, journal_entries).
    Raises LedgerImportError when the file holds no journal rows.
    """
    rows = parse_ledger(text)
    entries = rows_to_entries(rows)
    if not entries:
        raise LedgerImportError("Ledger file has no journal rows")
    return reconstruct_properties(entries), entries
