"""
components.py - reusable Streamlit components / forms / displays

This module contains pure-UI helpers used by the dashboard:
 - display_property_form(on_submit, editing)
 - display_property_card / stats / profit & loss / journal table
 - upload and download widgets for the database file and the ledger file

Figures are never computed here: they come from propcalc.calculations and
propcalc.journal.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import datetime

import altair as alt
import pandas as pd
import streamlit as st

from propcalc import calculations, journal, report
from propcalc.codec import EXPORT_FILE_NAME
from propcalc.coercion import to_number
from propcalc.models import JournalEntry, Property


# Trigger a Streamlit rerun in a way compatible with multiple Streamlit versions.
def _trigger_rerun():
    if hasattr(st, "rerun"):
        st.rerun()
    elif hasattr(st, "experimental_rerun"):
        st.experimental_rerun()


FLASH_KEY = "flash_message"


def flash(message: str):
    """Keep a confirmation for the next run; a rerun clears anything shown now."""
    st.session_state[FLASH_KEY] = message


def show_flash():
    message = st.session_state.pop(FLASH_KEY, None)
    if message:
        st.success(message)


@dataclass
class PropertyInput:
    """Lightweight container passed to the on_submit callback. Numbers stay raw strings."""
    name: str
    rent: str
    convenience_fee: str
    management_fee_percentage: str
    payment_date: str  # ISO date string
    expenses: List[Dict[str, Any]] = field(default_factory=list)


def _upload_key(uploaded) -> str:
    # file_uploader keeps returning the same file on every rerun
    return str(getattr(uploaded, "file_id", None) or (uploaded.name, uploaded.size))


def _number_text(value: float) -> str:
    return f"{value:g}" if value else ""


def display_property_form(on_submit: Callable[[PropertyInput], None], editing: Optional[Property] = None,
                          on_cancel: Optional[Callable[[], None]] = None):
    """
    Display the add / edit property form.

    Numeric fields are plain text inputs: whatever is typed is coerced later
    (unparsable text counts as 0). Expense rows are edited in a table; rows
    with an amount of 0 are dropped when the property is saved.
    """
    st.header("Edit Property" if editing else "Add New Property")
    form_key = f"property_form_{editing.id}" if editing else "property_form"
    with st.form(key=form_key, clear_on_submit=editing is None):
        name = st.text_input("Name", value=editing.name if editing else "")
        try:
            date_prefill = datetime.date.fromisoformat(editing.payment_date) if editing else datetime.date.today()
        except ValueError:
            date_prefill = datetime.date.today()
        payment_date = st.date_input("Payment Date", value=date_prefill)
        rent = st.text_input("Rent", value=_number_text(editing.rent) if editing else "", placeholder="Enter rent")
        convenience_fee = st.text_input(
            "Convenience Fee",
            value=_number_text(editing.convenience_fee) if editing else "",
            placeholder="Enter convenience fee",
        )
        management_fee_percentage = st.text_input(
            "Management Fee Percentage",
            value=_number_text(editing.management_fee_percentage) if editing else "",
            placeholder="Enter management fee percentage",
        )

        st.markdown("**Expenses**")
        rows = [{"amount": e.amount, "description": e.description} for e in editing.expenses] if editing else []
        initial = pd.DataFrame(rows or [{"amount": None, "description": ""}], columns=["amount", "description"])
        initial["amount"] = pd.to_numeric(initial["amount"], errors="coerce")
        expenses_df = st.data_editor(
            initial,
            num_rows="dynamic",
            use_container_width=True,
            key=f"{form_key}_expenses",
            column_config={
                "amount": st.column_config.NumberColumn("Amount", min_value=0.0, format="%.2f"),
                "description": st.column_config.TextColumn("Description"),
            },
        )

        submitted = st.form_submit_button("Update Property" if editing else "Add Property")

    if editing and on_cancel and st.button("Cancel"):
        on_cancel()
        _trigger_rerun()

    if not submitted:
        return
    if not name.strip():
        st.error("Property name is required.")
        return

    expenses = []
    for _, r in expenses_df.iterrows():
        amount = r.get("amount")
        expenses.append({
            "amount": None if pd.isna(amount) else amount,
            "description": "" if pd.isna(r.get("description")) else str(r.get("description")),
        })

    on_submit(PropertyInput(
        name=name.strip(),
        rent=rent,
        convenience_fee=convenience_fee,
        management_fee_percentage=management_fee_percentage,
        payment_date=payment_date.isoformat(),
        expenses=expenses,
    ))
    flash("Property updated." if editing else "Property added.")
    _trigger_rerun()


def _figure_rows(prop: Property) -> List[tuple]:
    rows = [
        ("Rent", to_number(prop.rent)),
        ("Convenience Fee", to_number(prop.convenience_fee)),
        ("Total Revenue", calculations.total_revenue(prop)),
        (f"Management Fee ({to_number(prop.management_fee_percentage):g}%)", calculations.management_fee(prop)),
    ]
    rows += [(e.description or "Expense", to_number(e.amount)) for e in prop.expenses if to_number(e.amount) > 0]
    rows += [
        ("Total Expenses", calculations.total_expenses(prop)),
        ("Owner Payout", calculations.owner_payout(prop)),
    ]
    return rows


def display_property_card(prop: Property, on_edit: Optional[Callable[[Property], None]] = None,
                          on_delete: Optional[Callable[[Property], None]] = None):
    """Show one property's figures with edit / delete / report actions."""
    with st.container(border=True):
        st.subheader(prop.name)
        st.caption(f"Payment Date: {journal.format_date(prop.payment_date)}")
        for label, amount in _figure_rows(prop):
            col1, col2 = st.columns([3, 1])
            col1.write(label)
            col2.write(calculations.format_currency(amount))

        col_edit, col_report, col_delete = st.columns(3)
        if on_edit and col_edit.button("Edit", key=f"edit_{prop.id}"):
            on_edit(prop)
            _trigger_rerun()
        col_report.download_button(
            label="Export Report",
            data=report.render_property_report(prop),
            file_name=f"{prop.name or 'property'}_report.html",
            mime="text/html",
            key=f"report_{prop.id}",
        )
        if on_delete and col_delete.button("Delete", key=f"delete_{prop.id}"):
            on_delete(prop)
            _trigger_rerun()


def display_breakdown_chart(prop: Property):
    """Bar chart splitting the collected total into fees, expenses and payout."""
    df = pd.DataFrame([
        {"part": "Management Fee", "amount": calculations.management_fee(prop)},
        {"part": "Convenience Fee", "amount": to_number(prop.convenience_fee)},
        {"part": "Expenses", "amount": calculations.expenses_sum(prop)},
        {"part": "Owner Payout", "amount": calculations.owner_payout(prop)},
    ])
    if df["amount"].abs().sum() <= 0:
        return
    chart = alt.Chart(df).mark_bar().encode(
        x=alt.X("part:N", title=None, sort=None),
        y=alt.Y("amount:Q", title="Amount ($)"),
        tooltip=[alt.Tooltip("part:N"), alt.Tooltip("amount:Q", format=",.2f")],
    ).properties(height=250, title=f"Where {calculations.format_currency(calculations.total_revenue(prop))} goes")
    st.altair_chart(chart, use_container_width=True)


def display_stats(stats: Dict[str, float]):
    """Headline numbers for the database view."""
    st.subheader("Database Statistics")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Properties", int(stats.get("count", 0)))
    col2.metric("Total Rent", calculations.format_currency(stats.get("total_rent", 0.0)))
    col3.metric("Total Expenses", calculations.format_currency(stats.get("total_expenses", 0.0)))
    col4.metric("Net Income", calculations.format_currency(stats.get("net_income", 0.0)))


def display_profit_and_loss(name: str, pl: Dict[str, Any], start: str, end: str):
    """P&L for one property name over a date range, with a printable download."""
    st.subheader(f"{name} - Profit & Loss")
    st.caption(f"{journal.format_date(start)} to {journal.format_date(end)}")
    money = calculations.format_currency
    with st.expander(f"Rent: {money(pl['rent'])}"):
        for p in pl["properties"]:
            st.write(f"  {journal.format_date(p.payment_date)}: {money(to_number(p.rent))}")
    with st.expander(f"Convenience Fees: {money(pl['convenience_fee'])}"):
        for p in pl["properties"]:
            st.write(f"  {journal.format_date(p.payment_date)}: {money(to_number(p.convenience_fee))}")
    with st.expander(f"Management Fees: {money(pl['management_fee'])}"):
        for p in pl["properties"]:
            st.write(f"  {journal.format_date(p.payment_date)}: {money(calculations.management_fee(p))}")
    with st.expander(f"Expenses: {money(pl['expenses'])}"):
        for category, bucket in sorted(pl["expense_categories"].items()):
            st.markdown(f"**{category}**: {money(bucket['total'])}")
            for item in bucket["entries"]:
                st.write(f"  {journal.format_date(item['date'])}: {money(item['amount'])}")
    st.markdown(f"**Total Revenue: {money(pl['total_revenue'])}**")
    st.markdown(f"**Total Expenses: {money(pl['total_expenses'])}**")
    st.markdown(f"**Net Income: {money(pl['net_income'])}**")
    st.download_button(
        label="Generate P&L Report",
        data=report.render_pl_report(name, pl, start, end),
        file_name=f"{name}_pl_report.html",
        mime="text/html",
    )


def display_journal(entries: List[JournalEntry]):
    """Render journal lines as a table with CSV and XLSX downloads."""
    st.header("Journal Entries")
    if not entries:
        st.write("No journal entries recorded.")
        return
    df = journal.export_frame(entries)
    st.dataframe(df, use_container_width=True, hide_index=True)
    display_journal_downloads(entries)


def display_journal_downloads(entries: List[JournalEntry]):
    col1, col2 = st.columns(2)
    col1.download_button(
        label="Generate CSV for Journal Entry",
        data=journal.to_csv(entries),
        file_name=journal.CSV_FILE_NAME,
        mime="text/csv",
    )
    col2.download_button(
        label="Download as XLSX",
        data=journal.to_xlsx(entries),
        file_name=journal.XLSX_FILE_NAME,
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


def _read_upload(label: str, types: List[str], key: str) -> Optional[str]:
    """Text of a newly uploaded file, or None when nothing new was uploaded."""
    uploaded = st.file_uploader(label, type=types, key=key)
    if uploaded is None:
        return None
    seen_key = f"{key}_seen"
    marker = _upload_key(uploaded)
    if st.session_state.get(seen_key) == marker:
        return None
    st.session_state[seen_key] = marker
    return uploaded.getvalue().decode("utf-8", errors="replace")


def display_ledger_upload(on_upload: Callable[[str], tuple]):
    """Tab-delimited ledger upload ("Upload AJE")."""
    st.subheader("Upload AJE")
    text = _read_upload("Ledger file (tab-delimited)", ["txt", "csv"], key="ledger_upload")
    if text is None:
        return
    ok, message = on_upload(text)
    if ok:
        st.success(message)
    else:
        st.error(message)


def display_database_io(export_text: str, on_import: Callable[[str], tuple]):
    """Export / import of the whole property database as JSON."""
    col1, col2 = st.columns(2)
    col1.download_button(
        label="Export Database",
        data=export_text,
        file_name=EXPORT_FILE_NAME,
        mime="application/json",
    )
    with col2:
        text = _read_upload("Import Database", ["json"], key="database_upload")
    if text is None:
        return
    ok, message = on_import(text)
    if ok:
        st.success(message)
    else:
        st.error(message)


def display_share_link(url: str):
    st.markdown("**Shareable Database Link**")
    st.code(url, language=None)
    st.caption("Save this link or share it to reopen the same property database.")
