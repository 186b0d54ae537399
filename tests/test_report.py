import datetime

from propcalc.calculations import profit_and_loss
from propcalc.models import Expense, Property
from propcalc.report import render_pl_report, render_property_report


def _example(**overrides):
    fields = dict(
        id=1,
        name="Unit A",
        rent=1000.0,
        convenience_fee=50.0,
        management_fee_percentage=10.0,
        payment_date="2024-01-15",
        expenses=[Expense(amount=100.0, description="Plumbing"), Expense(amount=0.0, description="Skipped")],
    )
    fields.update(overrides)
    return Property(**fields)


def test_property_report_figures():
    html = render_property_report(_example(), generated_on=datetime.date(2024, 2, 1))
    assert html.startswith("<!DOCTYPE html>")
    assert "<title>Unit A - Property Report</title>" in html
    assert "01/15/2024" in html
    assert "Management Fee (10%)" in html
    assert "$1,050.00" in html
    assert "$250.00" in html
    assert "$800.00" in html
    assert "Plumbing" in html
    assert "Skipped" not in html
    assert "Report generated on 02/01/2024" in html


def test_property_report_escapes_names():
    html = render_property_report(_example(name="<b>Loft</b>", expenses=[Expense(5.0, "Nails & screws")]))
    assert "<b>Loft</b>" not in html
    assert "&lt;b&gt;Loft&lt;/b&gt;" in html
    assert "Nails &amp; screws" in html


def test_pl_report():
    props = [_example(), _example(id=2, payment_date="2024-02-15")]
    pl = profit_and_loss(props, "Unit A", "2024-01-01", "2024-12-31")
    html = render_pl_report("Unit A", pl, "2024-01-01", "2024-12-31")
    assert "Unit A - P&amp;L Report" in html
    assert "01/01/2024 to 12/31/2024" in html
    assert "$2,000.00" in html
    assert "$1,600.00" in html
    assert "02/15/2024" in html
