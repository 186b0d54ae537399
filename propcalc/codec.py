"""
codec.py - application state <-> text

Two formats share one Codec interface (encode(state) -> str,
decode(text) -> AppState):

  CompactCodec  - single-letter keys, percent-encoded JSON for the page URL.
                  Holds properties only; the journal is rebuilt on decode.
                  {"p": [{"i", "n", "r", "c", "m", "d", "e": [{"a", "d"}]}]}
  VerboseCodec  - the pretty-printed export file
                  {"properties": [...], "journalEntries": [...]}

Both raise CodecError on malformed input; callers report it and keep their
current state.
"""

import json
from typing import Any, Dict, List, Optional
from urllib.parse import quote, unquote, urldefrag, urlsplit

from propcalc.coercion import to_number
from propcalc.journal import expand_all
from propcalc.models import AppState, Expense, JournalEntry, Property, new_import_id

EXPORT_FILE_NAME = "property_management_database.json"
STATE_QUERY_PARAM = "state"

# characters encodeURIComponent leaves alone besides letters, digits and "-_."
_URI_SAFE = "!~*'()"


class CodecError(ValueError):
    """Raised when a URL payload or an import file cannot be decoded."""


def _plain_number(value: Any):
    # 1000.0 -> 1000 keeps the URL short; fractional values are kept as-is
    number = to_number(value)
    if number.is_integer() and abs(number) < 1e15:
        return int(number)
    return number


class Codec:
    """Interface shared by the URL and export formats."""

    def encode(self, state: AppState) -> str:
        raise NotImplementedError

    def decode(self, text: str) -> Optional[AppState]:
        raise NotImplementedError


class CompactCodec(Codec):
    """URL form of the property list."""

    def to_compact(self, properties: List[Property]) -> Dict[str, Any]:
        return {
            "p": [
                {
                    "i": p.id,
                    "n": p.name,
                    "r": _plain_number(p.rent),
                    "c": _plain_number(p.convenience_fee),
                    "m": _plain_number(p.management_fee_percentage),
                    "d": p.payment_date,
                    "e": [
                        {"a": _plain_number(e.amount), "d": e.description}
                        for e in p.expenses
                        if to_number(e.amount) > 0
                    ],
                }
                for p in properties
            ]
        }

    def from_compact(self, data: Any) -> List[Property]:
        if not isinstance(data, dict) or not isinstance(data.get("p"), list):
            raise CodecError("URL state has no property list")
        properties: List[Property] = []
        for item in data["p"]:
            if not isinstance(item, dict):
                raise CodecError("URL state contains a malformed property")
            expenses = item.get("e") or []
            if not isinstance(expenses, list):
                raise CodecError("URL state contains a malformed expense list")
            properties.append(
                Property(
                    id=item["i"] if item.get("i") not in (None, "") else new_import_id(),
                    name=str(item.get("n", "") or ""),
                    rent=to_number(item.get("r")),
                    convenience_fee=to_number(item.get("c")),
                    management_fee_percentage=to_number(item.get("m")),
                    payment_date=str(item.get("d", "") or ""),
                    expenses=[
                        Expense(amount=to_number(e.get("a")), description=str(e.get("d", "") or ""))
                        for e in expenses
                        if isinstance(e, dict)
                    ],
                )
            )
        return properties

    def encode(self, state: AppState) -> str:
        text = json.dumps(self.to_compact(state.properties), separators=(",", ":"), ensure_ascii=False)
        return quote(text, safe=_URI_SAFE)

    def decode(self, text: str) -> Optional[AppState]:
        """
        Rebuild state from a URL payload ("#..." or bare). Returns None when
        the payload is empty: no saved state is not an error.
        """
        payload = (text or "").strip()
        if payload.startswith("#"):
            payload = payload[1:]
        if not payload:
            return None
        # query parameters usually arrive already percent-decoded
        raw = payload if payload.startswith("{") else unquote(payload)
        try:
            data = json.loads(raw)
        except (RecursionError, ValueError) as exc:
            raise CodecError(f"URL state is not valid JSON: {exc}") from exc
        properties = self.from_compact(data)
        return AppState(properties=properties, journal_entries=expand_all(properties))


class VerboseCodec(Codec):
    """Export/import database file."""

    def encode(self, state: AppState) -> str:
        data = {
            "properties": [p.to_dict() for p in state.properties],
            "journalEntries": [e.to_dict() for e in state.journal_entries],
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    def decode(self, text: str) -> AppState:
        """
        Parse an export file. "properties" must be a list; a missing or
        malformed "journalEntries" list is regenerated from the properties.
        """
        try:
            data = json.loads(text)
        except (RecursionError, TypeError, ValueError) as exc:
            raise CodecError(f"Invalid database file: {exc}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("properties"), list):
            raise CodecError("Invalid database format")
        if not all(isinstance(p, dict) for p in data["properties"]):
            raise CodecError("Invalid database format")
        if any(not isinstance(p.get("expenses") or [], list) for p in data["properties"]):
            raise CodecError("Invalid database format: expenses must be a list")

        properties = [Property.from_dict(p) for p in data["properties"]]
        raw_entries = data.get("journalEntries")
        if isinstance(raw_entries, list):
            entries = [JournalEntry.from_dict(e) for e in raw_entries if isinstance(e, dict)]
        else:
            entries = expand_all(properties)
        return AppState(properties=properties, journal_entries=entries)


compact_codec = CompactCodec()
verbose_codec = VerboseCodec()


def share_url(base_url: str, properties: List[Property], in_query: bool = False) -> str:
    """
    Link that restores the property list: the payload goes in the URL
    fragment, or in the "state" query parameter when in_query is set.
    """
    base, _ = urldefrag(base_url or "")
    payload = compact_codec.encode(AppState(properties=list(properties)))
    if in_query:
        sep = "&" if urlsplit(base).query else "?"
        return f"{base}{sep}{STATE_QUERY_PARAM}={payload}"
    return f"{base}#{payload}"


def payload_from_url(url: str) -> str:
    """
    Compact payload carried by a URL: the fragment, else the raw value of the
    "state" query parameter, else "".
    """
    base, fragment = urldefrag(url or "")
    if fragment:
        return fragment
    for pair in urlsplit(base).query.split("&"):
        key, _, value = pair.partition("=")
        if key == STATE_QUERY_PARAM:
            return value
    return ""
