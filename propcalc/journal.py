"""
journal.py - double-entry journal lines derived from a property

expand(property) turns one Property into a fixed skeleton of balanced
journal entries (9 base lines + 2 per positive expense). The journal shown in
the UI and exported to CSV/XLSX is always rebuilt from the property list with
this function; entries are never edited by hand.
"""

from io import BytesIO
from typing import Iterable, List

import pandas as pd

from propcalc.calculations import management_fee, owner_payout
from propcalc.coercion import to_number
from propcalc.models import JournalEntry, Property

# ledger account vocabulary ("Maintenanace" is the account's name in the books)
RENT_CLEARING = "Rent Clearing Account"
RENT_REVENUE = "Rent Revenue Received"
RENT_REVENUE_CONV_FEE = "Rent Revenue-Convenience Fee"
PM_INCOME_CONV_FEES = "PM Income Conv Fees (Current)"
CONV_FEE_EXPENSE = "Convenience Fee Expense"
MANAGEMENT_FEES = "Property Management Fees"
PM_INCOME_FEES = "PM Income Fees Reg Income (Current)"
REPAIRS = "Repairs and Maintenanace"
REPAIRS_PAYABLE = "Repairs Payable"
OWNER_PAYOUT = "Property Owner Payout"
OWNER_PAYABLE = "Owner Commissions Payable"

CSV_FILE_NAME = "property_management_journal_entry.csv"
XLSX_FILE_NAME = "property_management_journal_entry.xlsx"
CSV_HEADERS = [
    "Journal No.",
    "Journal Date",
    "Account",
    "Description",
    "Debits",
    "Credits",
    "Class",
]
FRAME_COLUMNS = ["Date", "Account", "Description", "Debit", "Credit", "Class"]


def money(value) -> str:
    return f"{to_number(value):.2f}"


def format_date(iso_date: str) -> str:
    """ISO "2024-01-15" -> "01/15/2024". Anything that is not Y-M-D is returned unchanged."""
    parts = str(iso_date or "").split("-")
    if len(parts) != 3:
        return str(iso_date or "")
    year, month, day = parts
    return f"{month}/{day}/{year}"


def journal_number(date: str) -> str:
    """Journal No. for an entry dated "MM/DD/YYYY": "01/15/2024" -> "20240115Rent"."""
    parts = str(date or "").split("/")
    if len(parts) != 3:
        return f"{date}Rent"
    month, day, year = parts
    return f"{year}{month}{day}Rent"


def expand(prop: Property) -> List[JournalEntry]:
    """
    Build the journal lines for one property, in ledger order:

      1. Rent Clearing Account            Dr total revenue
      2. Rent Revenue Received            Cr rent
      3. Rent Revenue-Convenience Fee     Cr convenience fee
      4. PM Income Conv Fees (Current)    Cr convenience fee
      5. Convenience Fee Expense          Dr convenience fee
      6. Property Management Fees         Dr management fee
      7. PM Income Fees Reg Income        Cr management fee
      8. per expense > 0: Repairs and Maintenanace Dr / Repairs Payable Cr
      9. Property Owner Payout            Dr owner payout
     10. Owner Commissions Payable        Cr owner payout

    Debits always equal credits for the returned list.
    """
    date = format_date(prop.payment_date)
    name = prop.name
    rent = to_number(prop.rent)
    conv_fee = to_number(prop.convenience_fee)
    mgmt_fee = management_fee(prop)
    payout = owner_payout(prop)
    # the clearing debit is the sum of the rounded credits it clears
    collected = to_number(money(rent)) + to_number(money(conv_fee))

    def line(account: str, description: str, debit=0.0, credit=0.0) -> JournalEntry:
        return JournalEntry(
            date=date,
            account=account,
            description=description,
            debit=money(debit),
            credit=money(credit),
            class_name=name,
        )

    entries = [
        line(RENT_CLEARING, f"Total Collected for {name}", debit=collected),
        line(RENT_REVENUE, f"Rent for {name}", credit=rent),
        line(RENT_REVENUE_CONV_FEE, f"Convenience Fee for {name}", credit=conv_fee),
        line(PM_INCOME_CONV_FEES, f"Convenience Fee for {name}", credit=conv_fee),
        line(CONV_FEE_EXPENSE, f"Convenience Fee for {name}", debit=conv_fee),
        line(MANAGEMENT_FEES, f"Management Fee for {name}", debit=mgmt_fee),
        line(PM_INCOME_FEES, f"Management Fee for {name}", credit=mgmt_fee),
    ]
    for e in prop.expenses:
        amount = to_number(e.amount)
        if amount <= 0:
            continue
        description = f"{e.description} for {name}"
        entries.append(line(REPAIRS, description, debit=amount))
        entries.append(line(REPAIRS_PAYABLE, description, credit=amount))
    entries.append(line(OWNER_PAYOUT, f"Owner Payout for {name}", debit=payout))
    entries.append(line(OWNER_PAYABLE, f"Owner Payout for {name}", credit=payout))
    return entries


def expand_all(properties: Iterable[Property]) -> List[JournalEntry]:
    """Journal for a whole property list, in property order."""
    entries: List[JournalEntry] = []
    for p in properties:
        entries.extend(expand(p))
    return entries


def has_amount(entry: JournalEntry) -> bool:
    return to_number(entry.debit) > 0 or to_number(entry.credit) > 0


def visible_entries(entries: Iterable[JournalEntry], properties: Iterable[Property]) -> List[JournalEntry]:
    """
    Entries shown in the journal view: complete rows with a non-zero side
    whose description mentions one of the current properties.
    """
    names = [p.name for p in properties]
    out: List[JournalEntry] = []
    for e in entries:
        if not (e.date and e.account and e.description):
            continue
        if not has_amount(e):
            continue
        if not any(n in e.description for n in names):
            continue
        out.append(e)
    return out


def export_frame(entries: Iterable[JournalEntry]) -> pd.DataFrame:
    """
    Rows of the CSV/XLSX journal export. All-zero lines are dropped and a zero
    side is left blank.
    """
    rows = []
    for e in entries:
        if not has_amount(e):
            continue
        rows.append({
            "Journal No.": journal_number(e.date),
            "Journal Date": e.date,
            "Account": e.account,
            "Description": e.description,
            "Debits": e.debit if to_number(e.debit) > 0 else "",
            "Credits": e.credit if to_number(e.credit) > 0 else "",
            "Class": e.class_name,
        })
    return pd.DataFrame(rows, columns=CSV_HEADERS)


def to_csv(entries: Iterable[JournalEntry]) -> str:
    return export_frame(entries).to_csv(index=False, lineterminator="\n")


def to_xlsx(entries: Iterable[JournalEntry]) -> bytes:
    """Same table as to_csv, as an XLSX workbook with a single "journal" sheet."""
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        export_frame(entries).to_excel(writer, index=False, sheet_name="journal")
    buffer.seek(0)
    return buffer.getvalue()


def journal_frame(entries: Iterable[JournalEntry]) -> pd.DataFrame:
    """DataFrame of journal entries for on-screen tables."""
    return pd.DataFrame([e.to_dict() for e in entries], columns=FRAME_COLUMNS)
