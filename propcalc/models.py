"""
models.py - Data model definitions

This file defines the Expense, Property and JournalEntry dataclasses used
across the tracker, codecs and UI. Records are serialized to/from plain dicts
so they can be embedded in the page URL or exported as JSON.

Numeric fields are coerced once, in from_dict() (see coercion.to_number);
code downstream of the models never re-parses raw strings.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Union
import random
import time

from propcalc.coercion import coerce_or_zero


PropertyId = Union[int, str]


def new_property_id() -> int:
    """Id for a property created from the form: the current time in milliseconds."""
    return int(time.time() * 1000)


def new_import_id() -> str:
    """Id for a property synthesized by the ledger import (timestamp + random part)."""
    return f"{new_property_id()}-{random.randint(0, 999999):06d}"


@dataclass
class Expense:
    """
    A single expense charged against one property for the payment period.

    Fields:
      - amount: expense amount; 0.0 when the input could not be parsed
      - description: free text, reused in journal entry descriptions
    """
    amount: float = 0.0
    description: str = ""

    def to_dict(self) -> Dict:
        return {"description": self.description, "amount": self.amount}

    @staticmethod
    def from_dict(d: Dict) -> "Expense":
        return Expense(
            amount=coerce_or_zero(d.get("amount")),
            description=str(d.get("description", "") or ""),
        )


@dataclass
class Property:
    """
    One managed rental unit's financial record for a payment period.

    Fields:
      - id: unique id (int timestamp for form-created properties, composite
        string for ledger imports); never changes once assigned
      - name: display name, also the journal "Class"
      - rent: rent collected for the period
      - convenience_fee: pass-through fee collected with the rent
      - management_fee_percentage: percent of rent retained by the manager
      - payment_date: ISO date string "YYYY-MM-DD"
      - expenses: ordered list of Expense
    """
    id: PropertyId = 0
    name: str = ""
    rent: float = 0.0
    convenience_fee: float = 0.0
    management_fee_percentage: float = 0.0
    payment_date: str = ""
    expenses: List[Expense] = field(default_factory=list)

    def to_dict(self) -> Dict:
        """
        Convert to a plain dict with the export file's field names.
        """
        return {
            "id": self.id,
            "name": self.name,
            "paymentDate": self.payment_date,
            "rent": self.rent,
            "convenienceFee": self.convenience_fee,
            "managementFeePercentage": self.management_fee_percentage,
            "expenses": [e.to_dict() for e in self.expenses],
        }

    @staticmethod
    def from_dict(d: Dict) -> "Property":
        """
        Construct a Property from a dict (inverse of to_dict).
        Missing keys fall back to defaults (a fresh id when "id" is absent);
        numbers are coerced to float.
        """
        return Property(
            id=d["id"] if d.get("id") not in (None, "") else new_import_id(),
            name=str(d.get("name", "") or ""),
            rent=coerce_or_zero(d.get("rent")),
            convenience_fee=coerce_or_zero(d.get("convenienceFee")),
            management_fee_percentage=coerce_or_zero(d.get("managementFeePercentage")),
            payment_date=str(d.get("paymentDate", "") or ""),
            expenses=[Expense.from_dict(e) for e in d.get("expenses", []) or [] if isinstance(e, dict)],
        )


@dataclass
class JournalEntry:
    """
    One line of the double-entry journal.

    Debit and credit are kept as 2-decimal strings ("1050.00") exactly as they
    are exported; class_name is the property name (the ledger's "Class").
    """
    date: str = ""  # "MM/DD/YYYY"
    account: str = ""
    description: str = ""
    debit: str = "0.00"
    credit: str = "0.00"
    class_name: str = ""

    def to_dict(self) -> Dict:
        return {
            "Date": self.date,
            "Account": self.account,
            "Description": self.description,
            "Debit": self.debit,
            "Credit": self.credit,
            "Class": self.class_name,
        }

    @staticmethod
    def from_dict(d: Dict) -> "JournalEntry":
        return JournalEntry(
            date=str(d.get("Date", "") or ""),
            account=str(d.get("Account", "") or ""),
            description=str(d.get("Description", "") or ""),
            debit=str(d.get("Debit", "") or "0.00"),
            credit=str(d.get("Credit", "") or "0.00"),
            class_name=str(d.get("Class", "") or ""),
        )


@dataclass
class AppState:
    """Properties plus the journal derived from (or imported alongside) them."""
    properties: List[Property] = field(default_factory=list)
    journal_entries: List[JournalEntry] = field(default_factory=list)
