"""
dashboard.py - Streamlit UI entrypoint and orchestration

This module wires the UI components (propcalc.ui.components) with the
application state (propcalc.tracker). The main() function builds the sidebar
menu and routes actions to components and tracker methods.

Design notes:
 - Keep the dashboard responsible only for UI orchestration and presentation.
 - All calculations and journal rules live in propcalc.tracker and the
   modules it calls.
 - One PropertyTracker per browser session, kept in st.session_state and
   rehydrated from the "state" query parameter on the first run.
 - After every change the compact state is mirrored into the address bar so
   a reload or a bookmark restores it.
"""

import datetime

import streamlit as st

from propcalc.codec import STATE_QUERY_PARAM
from propcalc.tracker import PropertyTracker
from propcalc.ui import components

TRACKER_KEY = "tracker"
EDITING_KEY = "editing_property_id"
DEFAULT_APP_URL = "http://localhost:8501/"


def _get_tracker() -> PropertyTracker:
    if TRACKER_KEY not in st.session_state:
        tracker = PropertyTracker()
        payload = st.query_params.get(STATE_QUERY_PARAM, "")
        if payload:
            loaded, message = tracker.load_from_url(payload)
            if not loaded and message:
                st.session_state["load_error"] = message
        st.session_state[TRACKER_KEY] = tracker
    return st.session_state[TRACKER_KEY]


def _sync_url(tracker: PropertyTracker):
    """Mirror the property list into the address bar."""
    if tracker.properties:
        payload = tracker.url_payload()
        if st.query_params.get(STATE_QUERY_PARAM) != payload:
            st.query_params[STATE_QUERY_PARAM] = payload
    elif STATE_QUERY_PARAM in st.query_params:
        del st.query_params[STATE_QUERY_PARAM]


def _app_url() -> str:
    context = getattr(st, "context", None)
    url = getattr(context, "url", None) if context is not None else None
    return url or DEFAULT_APP_URL


def _editing_property(tracker: PropertyTracker):
    editing_id = st.session_state.get(EDITING_KEY)
    if editing_id is None:
        return None
    prop = tracker.get_property(editing_id)
    if prop is None:
        st.session_state.pop(EDITING_KEY, None)
    return prop


def _card_callbacks(tracker: PropertyTracker):
    def on_edit(prop):
        st.session_state[EDITING_KEY] = prop.id

    def on_delete(prop):
        tracker.delete_property(prop.id)
        if st.session_state.get(EDITING_KEY) == prop.id:
            st.session_state.pop(EDITING_KEY, None)
        _sync_url(tracker)

    return on_edit, on_delete


def _calculator_view(tracker: PropertyTracker):
    editing = _editing_property(tracker)

    # receives the PropertyInput produced by the form
    def on_submit(prop_input: components.PropertyInput):
        fields = dict(
            name=prop_input.name,
            rent=prop_input.rent,
            convenience_fee=prop_input.convenience_fee,
            management_fee_percentage=prop_input.management_fee_percentage,
            payment_date=prop_input.payment_date,
            expenses=prop_input.expenses,
        )
        if editing is not None:
            tracker.edit_property(editing.id, **fields)
            st.session_state.pop(EDITING_KEY, None)
        else:
            tracker.add_property(**fields)
        _sync_url(tracker)

    def on_cancel():
        st.session_state.pop(EDITING_KEY, None)

    components.display_property_form(on_submit, editing=editing, on_cancel=on_cancel)

    st.markdown("---")

    def on_ledger(text: str):
        ok, message = tracker.import_ledger(text)
        if ok:
            _sync_url(tracker)
        return ok, message

    components.display_ledger_upload(on_ledger)

    latest = tracker.latest_property()
    if latest is not None:
        on_edit, on_delete = _card_callbacks(tracker)
        components.display_property_card(latest, on_edit=on_edit, on_delete=on_delete)
        components.display_breakdown_chart(latest)
        components.display_journal_downloads(tracker.journal_entries)


def _database_view(tracker: PropertyTracker):
    st.header("Saved Properties Database")
    names = tracker.property_names()
    col1, col2, col3 = st.columns([2, 1, 1])
    with col1:
        selected = st.selectbox("Select Property", options=[None] + names,
                                format_func=lambda n: "-- All Properties --" if n is None else n)
    with col2:
        sort_by = st.selectbox("Sort by", options=["name", "rent", "date"], format_func=str.capitalize)
    with col3:
        direction = st.radio("Order", options=["asc", "desc"], horizontal=True)

    props = tracker.list_properties(name=selected, sort_by=sort_by, descending=direction == "desc")
    st.write(f"Total Properties: {len(tracker.properties)}")
    st.write(f"Displayed Properties: {len(props)}")

    def on_import(text: str):
        ok, message = tracker.import_database(text)
        if ok:
            st.session_state.pop(EDITING_KEY, None)
            _sync_url(tracker)
        return ok, message

    components.display_database_io(tracker.export_database(), on_import)

    if selected is not None:
        first, last = tracker.date_range(selected)
        try:
            first_d = datetime.date.fromisoformat(first) if first else None
            last_d = datetime.date.fromisoformat(last) if last else None
        except ValueError:
            st.warning(f"{selected} has payment dates that are not YYYY-MM-DD; P&L is unavailable.")
            first_d = last_d = None
        if first_d and last_d:
            c1, c2 = st.columns(2)
            start = c1.date_input("Start date", value=first_d, key=f"pl_start_{selected}")
            end = c2.date_input("End date", value=last_d, key=f"pl_end_{selected}")
            pl = tracker.profit_and_loss(selected, start, end)
            components.display_profit_and_loss(selected, pl, start.isoformat(), end.isoformat())

    components.display_stats(tracker.stats(name=selected))

    if not props:
        st.info("No properties found. Please add some properties or select a different property from the dropdown.")
    on_edit, on_delete = _card_callbacks(tracker)
    for prop in props:
        components.display_property_card(prop, on_edit=on_edit, on_delete=on_delete)

    if tracker.properties:
        components.display_share_link(tracker.share_url(_app_url(), in_query=True))


def main():
    """
    Streamlit page: sidebar menu controls which view is shown.
    Views:
      - Calculator: add / edit a property, upload a ledger, latest property card
      - Database: filter, sort, P&L, statistics, export / import, share link
      - Journal Entries: the journal table with CSV / XLSX downloads
    """
    st.title("Property Management Commission Calculator")
    tracker = _get_tracker()
    load_error = st.session_state.pop("load_error", None)
    if load_error:
        st.error(load_error)
    components.show_flash()

    menu = ["Calculator", "Database", "Journal Entries"]
    choice = st.sidebar.radio("View", menu)
    st.sidebar.caption(f"{len(tracker.properties)} properties, {len(tracker.journal_entries)} journal lines")

    if choice == "Calculator":
        _calculator_view(tracker)
    elif choice == "Database":
        _database_view(tracker)
    elif choice == "Journal Entries":
        components.display_journal(tracker.visible_journal())


if __name__ == "__main__":
    main()
