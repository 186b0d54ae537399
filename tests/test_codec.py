import json
from urllib.parse import unquote

import pytest
from propcalc.codec import (
    CodecError,
    CompactCodec,
    VerboseCodec,
    payload_from_url,
    share_url,
)
from propcalc.journal import expand_all
from propcalc.models import AppState, Expense, JournalEntry, Property


def _properties():
    return [
        Property(
            id=1700000000000,
            name="Unit A",
            rent=1000.0,
            convenience_fee=50.0,
            management_fee_percentage=10.0,
            payment_date="2024-01-15",
            expenses=[Expense(100.0, "Plumbing"), Expense(0.0, "Placeholder")],
        ),
        Property(
            id="1700000000001-000042",
            name="Café 50% off & more",
            rent=875.5,
            convenience_fee=0.0,
            management_fee_percentage=8.25,
            payment_date="2024-02-01",
            expenses=[Expense(12.34, "Keys / locks")],
        ),
    ]


def _without_zero_expenses(props):
    for p in props:
        p.expenses = [e for e in p.expenses if e.amount > 0]
    return props


def test_compact_encoding_is_percent_encoded_json():
    payload = CompactCodec().encode(AppState(properties=_properties()))
    assert payload.startswith("%7B%22p%22%3A%5B")
    data = json.loads(unquote(payload))
    first = data["p"][0]
    assert first == {
        "i": 1700000000000,
        "n": "Unit A",
        "r": 1000,
        "c": 50,
        "m": 10,
        "d": "2024-01-15",
        "e": [{"a": 100, "d": "Plumbing"}],
    }
    assert data["p"][1]["r"] == 875.5


def test_compact_round_trip_drops_zero_expenses_and_rebuilds_journal():
    codec = CompactCodec()
    original = _properties()
    state = codec.decode(codec.encode(AppState(properties=original)))
    expected = _without_zero_expenses(_properties())
    assert state.properties == expected
    assert state.journal_entries == expand_all(expected)


def test_compact_decode_accepts_leading_hash_and_decoded_json():
    codec = CompactCodec()
    payload = codec.encode(AppState(properties=_properties()))
    assert codec.decode("#" + payload).properties == codec.decode(payload).properties
    assert codec.decode(unquote(payload)).properties == codec.decode(payload).properties


@pytest.mark.parametrize("payload", ["", "#", "   ", None])
def test_compact_decode_empty_is_no_saved_state(payload):
    assert CompactCodec().decode(payload) is None


@pytest.mark.parametrize("payload", [
    "%7Bnot-json",
    "%5B1%2C2%5D",          # [1,2]
    "%7B%22x%22%3A1%7D",    # {"x":1}
    "%7B%22p%22%3A%5B1%5D%7D",  # {"p":[1]}
    "[" * 100000 + "]" * 100000,
])
def test_compact_decode_rejects_malformed_payloads(payload):
    with pytest.raises(CodecError):
        CompactCodec().decode(payload)


def test_compact_decode_coerces_numbers():
    payload = '{"p":[{"i":5,"n":"X","r":"900","c":"","m":"abc","d":"2024-03-01","e":[{"a":"20","d":"Fix"}]}]}'
    prop = CompactCodec().decode(payload).properties[0]
    assert (prop.rent, prop.convenience_fee, prop.management_fee_percentage) == (900.0, 0.0, 0.0)
    assert prop.expenses == [Expense(20.0, "Fix")]


def test_decode_without_ids_assigns_distinct_ids():
    payload = '{"p":[{"n":"A","r":1},{"n":"B","r":2}]}'
    ids = [p.id for p in CompactCodec().decode(payload).properties]
    assert 0 not in ids
    assert len(set(ids)) == 2

    data = {"properties": [{"name": "A"}, {"name": "B"}]}
    ids = [p.id for p in VerboseCodec().decode(json.dumps(data)).properties]
    assert 0 not in ids
    assert len(set(ids)) == 2


def test_verbose_encoding_is_pretty_json_with_both_lists():
    props = _properties()
    text = VerboseCodec().encode(AppState(properties=props, journal_entries=expand_all(props)))
    assert "\n  " in text
    data = json.loads(text)
    assert data["properties"][0] == {
        "id": 1700000000000,
        "name": "Unit A",
        "paymentDate": "2024-01-15",
        "rent": 1000.0,
        "convenienceFee": 50.0,
        "managementFeePercentage": 10.0,
        "expenses": [
            {"description": "Plumbing", "amount": 100.0},
            {"description": "Placeholder", "amount": 0.0},
        ],
    }
    assert data["journalEntries"][0] == {
        "Date": "01/15/2024",
        "Account": "Rent Clearing Account",
        "Description": "Total Collected for Unit A",
        "Debit": "1050.00",
        "Credit": "0.00",
        "Class": "Unit A",
    }


def test_verbose_round_trip():
    codec = VerboseCodec()
    props = _properties()
    state = AppState(properties=props, journal_entries=expand_all(props))
    decoded = codec.decode(codec.encode(state))
    assert decoded.properties == props
    assert decoded.journal_entries == state.journal_entries


def test_verbose_import_keeps_stored_journal_verbatim():
    stored = [JournalEntry("01/01/2024", "Custom", "Hand entry for Unit A", "1.00", "0.00", "Unit A")]
    text = VerboseCodec().encode(AppState(properties=_properties(), journal_entries=stored))
    assert VerboseCodec().decode(text).journal_entries == stored


@pytest.mark.parametrize("journal_value", [None, "nope", 3])
def test_verbose_import_regenerates_missing_journal(journal_value):
    data = {"properties": [p.to_dict() for p in _properties()]}
    if journal_value is not None:
        data["journalEntries"] = journal_value
    state = VerboseCodec().decode(json.dumps(data))
    assert state.journal_entries == expand_all(_properties())


@pytest.mark.parametrize("text", [
    "not json",
    "[]",
    '{"journalEntries": []}',
    '{"properties": {"id": 1}}',
    '{"properties": [1, 2]}',
    '{"properties": [{"id": 1, "name": "X", "expenses": 5}]}',
    '{"properties": [{"id": 1, "name": "X", "expenses": true}]}',
    '{"properties": ' + '[' * 100000 + ']' * 100000 + '}',
])
def test_verbose_import_rejects_bad_files(text):
    with pytest.raises(CodecError):
        VerboseCodec().decode(text)


def test_share_url_uses_fragment_by_default():
    url = share_url("https://example.com/app#old", _properties())
    assert url.startswith("https://example.com/app#%7B")
    state = CompactCodec().decode(payload_from_url(url))
    assert state.properties == _without_zero_expenses(_properties())


def test_share_url_in_query():
    url = share_url("https://example.com/app?tab=db", _properties(), in_query=True)
    assert url.startswith("https://example.com/app?tab=db&state=%7B")
    assert CompactCodec().decode(payload_from_url(url)).properties[0].name == "Unit A"


def test_payload_from_url_without_state():
    assert payload_from_url("https://example.com/app") == ""
    assert payload_from_url("") == ""
