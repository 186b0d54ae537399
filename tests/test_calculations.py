import pytest
from propcalc.calculations import (
    date_range_for,
    expenses_sum,
    format_currency,
    management_fee,
    owner_payout,
    portfolio_stats,
    profit_and_loss,
    total_expenses,
    total_revenue,
)
from propcalc.coercion import coerce_or_zero, to_number
from propcalc.models import Expense, Property


def _example(**overrides):
    fields = dict(
        id=1,
        name="Unit A",
        rent=1000.0,
        convenience_fee=50.0,
        management_fee_percentage=10.0,
        payment_date="2024-01-15",
        expenses=[Expense(amount=100.0, description="Plumbing")],
    )
    fields.update(overrides)
    return Property(**fields)


@pytest.mark.parametrize("raw, expected", [
    ("1000", 1000.0),
    (" 12.5", 12.5),
    ("12abc", 12.0),
    (".5", 0.5),
    ("-2", -2.0),
    ("1e3", 1000.0),
    (7, 7.0),
    (2.25, 2.25),
    ("abc", 0.0),
    ("", 0.0),
    (None, 0.0),
    ("Infinity", 0.0),
    (float("nan"), 0.0),
    (True, 0.0),
])
def test_to_number(raw, expected):
    assert to_number(raw) == expected


def test_coerce_or_zero_is_the_same_policy():
    assert coerce_or_zero("oops") == 0.0
    assert coerce_or_zero("42") == to_number("42")


def test_example_property_figures():
    p = _example()
    assert total_revenue(p) == 1050
    assert management_fee(p) == 100
    assert total_expenses(p) == 250
    assert owner_payout(p) == 800


def test_convenience_fee_cancels_out_of_payout():
    with_fee = _example(convenience_fee=75.0)
    without_fee = _example(convenience_fee=0.0)
    assert owner_payout(with_fee) == pytest.approx(owner_payout(without_fee))
    assert owner_payout(with_fee) == pytest.approx(
        with_fee.rent - management_fee(with_fee) - expenses_sum(with_fee)
    )


def test_total_expenses_minus_fees_is_expense_sum():
    p = _example(expenses=[Expense(12.34, "Paint"), Expense(56.78, "Locks")], convenience_fee=3.5)
    leftover = total_expenses(p) - management_fee(p) - p.convenience_fee
    assert leftover == pytest.approx(12.34 + 56.78)


def test_derivations_tolerate_raw_strings():
    p = Property(name="Raw", rent="1200", convenience_fee="", management_fee_percentage="8%",
                 expenses=[Expense(amount="n/a", description="?"), Expense(amount="30", description="Keys")])
    assert total_revenue(p) == 1200
    assert management_fee(p) == pytest.approx(96)
    assert expenses_sum(p) == 30
    assert owner_payout(p) == pytest.approx(1200 - 96 - 30)


def test_all_zero_property():
    p = Property(name="Empty")
    assert total_revenue(p) == 0
    assert management_fee(p) == 0
    assert total_expenses(p) == 0
    assert owner_payout(p) == 0


def test_format_currency():
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(-12) == "-$12.00"
    assert format_currency("bad") == "$0.00"


def test_portfolio_stats():
    stats = portfolio_stats([_example(), _example(id=2, name="Unit B", rent=500.0, convenience_fee=0.0, expenses=[])])
    assert stats["count"] == 2
    assert stats["total_rent"] == 1500
    # 250 for Unit A, 50 management fee for Unit B
    assert stats["total_expenses"] == pytest.approx(300)
    assert stats["net_income"] == pytest.approx(1200)


def test_portfolio_stats_empty():
    assert portfolio_stats([]) == {"count": 0, "total_rent": 0.0, "total_expenses": 0.0, "net_income": 0.0}


def test_profit_and_loss_filters_by_name_and_inclusive_range():
    props = [
        _example(id=1, payment_date="2024-01-15"),
        _example(id=2, payment_date="2024-02-15", expenses=[Expense(40.0, "Plumbing"), Expense(0.0, "Nothing")]),
        _example(id=3, payment_date="2024-03-15"),
        _example(id=4, name="Unit B", payment_date="2024-02-01"),
    ]
    pl = profit_and_loss(props, "Unit A", "2024-01-15", "2024-02-15")
    assert [p.id for p in pl["properties"]] == [1, 2]
    assert pl["rent"] == 2000
    assert pl["convenience_fee"] == 100
    assert pl["management_fee"] == 200
    assert pl["expenses"] == 140
    assert pl["total_revenue"] == 2100
    assert pl["total_expenses"] == pytest.approx(440)
    assert pl["net_income"] == pytest.approx(1660)
    assert list(pl["expense_categories"]) == ["Plumbing"]
    assert pl["expense_categories"]["Plumbing"]["total"] == 140
    assert pl["expense_categories"]["Plumbing"]["entries"] == [
        {"date": "2024-01-15", "amount": 100.0},
        {"date": "2024-02-15", "amount": 40.0},
    ]


def test_date_range_for():
    props = [_example(payment_date="2024-03-01"), _example(payment_date="2024-01-01"), _example(name="Other")]
    assert date_range_for(props, "Unit A") == ("2024-01-01", "2024-03-01")
    assert date_range_for(props, "Missing") == (None, None)
