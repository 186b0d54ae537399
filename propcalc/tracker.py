"""
tracker.py - core application logic and state

Responsibilities:
 - keep the in-memory property list and the journal derived from it
 - keep the journal in step with property add / edit / delete
 - provide helper APIs consumed by the UI:
     add_property, edit_property, delete_property, list_properties,
     stats, profit_and_loss, journal exports,
     URL state (load_from_url / url_payload), database export / import,
     ledger import

There is no storage backend: state lives for the browser session and is
carried only by the page URL or an exported file.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from propcalc import calculations, journal
from propcalc.codec import CodecError, compact_codec, share_url, verbose_codec
from propcalc.coercion import coerce_or_zero
from propcalc.ledger_import import LedgerImportError, import_ledger
from propcalc.models import AppState, Expense, JournalEntry, Property, PropertyId, new_property_id

SORT_FIELDS = ("name", "rent", "date")

# ensure a logger is available
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


def _same_id(a: Any, b: Any) -> bool:
    # ids loaded from JSON/URL may come back as int or str
    return str(a) == str(b)


def _to_expenses(expenses: Optional[Iterable[Any]]) -> List[Expense]:
    """Coerce form rows (Expense objects or dicts) and drop amounts <= 0."""
    out: List[Expense] = []
    for e in expenses or []:
        exp = e if isinstance(e, Expense) else Expense.from_dict(e)
        amount = coerce_or_zero(exp.amount)
        if amount <= 0:
            continue
        out.append(Expense(amount=amount, description=str(exp.description or "").strip()))
    return out


class PropertyTracker:
    """
    Owner of the application state. The UI keeps one PropertyTracker per
    browser session and calls its methods on every user action.
    """

    def __init__(self, state: Optional[AppState] = None):
        state = state or AppState()
        # in-memory list of Property objects
        self.properties: List[Property] = list(state.properties)
        # flat journal across all properties, in insertion order
        self.journal_entries: List[JournalEntry] = list(state.journal_entries)

    @property
    def state(self) -> AppState:
        return AppState(properties=list(self.properties), journal_entries=list(self.journal_entries))

    def _replace_state(self, state: AppState):
        self.properties = list(state.properties)
        self.journal_entries = list(state.journal_entries)

    def _unique_id(self) -> int:
        new_id = new_property_id()
        taken = {str(p.id) for p in self.properties}
        while str(new_id) in taken:
            new_id += 1
        return new_id

    # -----------------------
    # Property CRUD
    # -----------------------
    def add_property(
        self,
        name: str,
        rent: Any = 0,
        convenience_fee: Any = 0,
        management_fee_percentage: Any = 0,
        payment_date: str = "",
        expenses: Optional[Iterable[Any]] = None,
    ) -> Property:
        """
        Create a Property from raw form values and append its journal lines.
        Numeric inputs may be strings; unparsable values become 0.
        Expenses with an amount <= 0 are dropped.
        """
        prop = Property(
            id=self._unique_id(),
            name=(name or "").strip(),
            rent=coerce_or_zero(rent),
            convenience_fee=coerce_or_zero(convenience_fee),
            management_fee_percentage=coerce_or_zero(management_fee_percentage),
            payment_date=payment_date or "",
            expenses=_to_expenses(expenses),
        )
        self.properties.append(prop)
        self.journal_entries.extend(journal.expand(prop))
        logger.info("Added property id=%s name=%r (properties=%d)", prop.id, prop.name, len(self.properties))
        return prop

    def get_property(self, property_id: PropertyId) -> Optional[Property]:
        return next((p for p in self.properties if _same_id(p.id, property_id)), None)

    def edit_property(self, property_id: PropertyId, **kwargs) -> Optional[Property]:
        """
        Update an existing property. Supported kwargs:
        name, rent, convenience_fee, management_fee_percentage, payment_date, expenses.
        Journal lines filed under the property's old name are replaced by
        freshly expanded ones. Returns the updated Property or None if id not found.
        """
        for i, old in enumerate(self.properties):
            if not _same_id(old.id, property_id):
                continue
            updated = Property(
                id=old.id,
                name=(kwargs.get("name", old.name) or "").strip(),
                rent=coerce_or_zero(kwargs.get("rent", old.rent)),
                convenience_fee=coerce_or_zero(kwargs.get("convenience_fee", old.convenience_fee)),
                management_fee_percentage=coerce_or_zero(
                    kwargs.get("management_fee_percentage", old.management_fee_percentage)
                ),
                payment_date=kwargs.get("payment_date", old.payment_date) or "",
                expenses=_to_expenses(kwargs.get("expenses", old.expenses)),
            )
            self.properties[i] = updated
            kept = [e for e in self.journal_entries if e.class_name != old.name]
            self.journal_entries = kept + journal.expand(updated)
            logger.info("Edited property id=%s (%r -> %r)", old.id, old.name, updated.name)
            return updated
        logger.info("Property id=%s not found", property_id)
        return None

    def delete_property(self, property_id: PropertyId) -> bool:
        """
        Remove a property by id, together with every journal line whose
        description mentions its name. Returns True if deleted, False if not found.
        """
        for i, prop in enumerate(self.properties):
            if not _same_id(prop.id, property_id):
                continue
            removed = self.properties.pop(i)
            before = len(self.journal_entries)
            self.journal_entries = [e for e in self.journal_entries if removed.name not in e.description]
            logger.info(
                "Deleted property id=%s (name=%r). Removed %d journal lines, %d properties left.",
                removed.id, removed.name, before - len(self.journal_entries), len(self.properties),
            )
            return True
        logger.info("Property id=%s not found", property_id)
        return False

    def clear(self):
        """Reset to an empty property list and journal."""
        self.properties = []
        self.journal_entries = []

    # -----------------------
    # Queries
    # -----------------------
    def property_names(self) -> List[str]:
        """Distinct property names in first-seen order."""
        names: List[str] = []
        for p in self.properties:
            if p.name not in names:
                names.append(p.name)
        return names

    def list_properties(self, name: Optional[str] = None, sort_by: str = "name", descending: bool = False) -> List[Property]:
        """
        Return properties, optionally restricted to one name and sorted by
        "name", "rent" or "date" (payment date). Unknown sort keys keep
        insertion order.
        """
        props = [p for p in self.properties if name is None or p.name == name]
        if sort_by == "name":
            props.sort(key=lambda p: p.name.lower(), reverse=descending)
        elif sort_by == "rent":
            props.sort(key=lambda p: coerce_or_zero(p.rent), reverse=descending)
        elif sort_by == "date":
            props.sort(key=lambda p: p.payment_date, reverse=descending)
        return props

    def latest_property(self) -> Optional[Property]:
        return self.properties[-1] if self.properties else None

    def stats(self, name: Optional[str] = None) -> Dict[str, float]:
        return calculations.portfolio_stats(self.list_properties(name=name, sort_by=""))

    def date_range(self, name: str):
        return calculations.date_range_for(self.properties, name)

    def profit_and_loss(self, name: str, start: Any, end: Any) -> Dict[str, Any]:
        return calculations.profit_and_loss(self.properties, name, start, end)

    # -----------------------
    # Journal
    # -----------------------
    def regenerate_journal(self) -> List[JournalEntry]:
        """Rebuild the journal from the current property list."""
        self.journal_entries = journal.expand_all(self.properties)
        return self.journal_entries

    def visible_journal(self) -> List[JournalEntry]:
        return journal.visible_entries(self.journal_entries, self.properties)

    def journal_csv(self) -> str:
        return journal.to_csv(self.journal_entries)

    def journal_xlsx(self) -> bytes:
        return journal.to_xlsx(self.journal_entries)

    # -----------------------
    # URL state / export / import
    # -----------------------
    def url_payload(self) -> str:
        """Compact state for the address bar (properties only)."""
        return compact_codec.encode(self.state)

    def share_url(self, base_url: str, in_query: bool = False) -> str:
        return share_url(base_url, self.properties, in_query=in_query)

    def load_from_url(self, payload: str) -> Tuple[bool, str]:
        """
        Restore state from a URL payload. An empty payload is the normal
        "nothing saved" case and leaves the state alone.
        Returns (loaded, message).
        """
        try:
            state = compact_codec.decode(payload)
        except CodecError as exc:
            logger.exception("Error loading state from URL")
            return False, f"Could not load the saved state from the link: {exc}"
        if state is None:
            return False, ""
        self._replace_state(state)
        logger.info("Loaded %d properties from URL", len(self.properties))
        return True, f"Loaded {len(self.properties)} properties from the link."

    def export_database(self) -> str:
        return verbose_codec.encode(self.state)

    def import_database(self, text: str) -> Tuple[bool, str]:
        """
        Replace state with the content of an exported database file.
        On failure the current state is kept. Returns (ok, message).
        """
        try:
            state = verbose_codec.decode(text)
        except CodecError as exc:
            logger.exception("Error importing database")
            return False, f"Failed to import database. Invalid file format ({exc})."
        self._replace_state(state)
        logger.info(
            "Imported database: %d properties, %d journal lines",
            len(self.properties), len(self.journal_entries),
        )
        return True, "Database imported successfully!"

    def import_ledger(self, text: str) -> Tuple[bool, str]:
        """
        Replace state with properties rebuilt from a tab-delimited ledger.
        The ledger rows become the journal as they are. Returns (ok, message).
        """
        try:
            properties, entries = import_ledger(text)
        except LedgerImportError as exc:
            logger.warning("Ledger import rejected: %s", exc)
            return False, f"Failed to import ledger: {exc}"
        self._replace_state(AppState(properties=properties, journal_entries=entries))
        logger.info("Imported ledger: %d properties, %d journal lines", len(properties), len(entries))
        return True, f"Imported {len(properties)} properties from {len(entries)} journal lines."
