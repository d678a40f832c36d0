import pytest

from actual_skill.aggregate import (
    accounts_with_balances,
    collect_transactions,
    filter_transactions,
    format_frequency,
    newest_first,
    rollup_budget_month,
    search_transactions,
    simplify_schedule,
    spending_summary,
    summarize_spending,
)
from actual_skill.schemas import RangeAmount, Recurrence, SingleAmount, parse_schedule_amount

PAYEES = {"pay_costco": "Costco", "pay_shell": "Shell"}


def _tx(id, date, amount, **extra):
    return {"id": id, "date": date, "amount": amount, **extra}


class TestFilters:
    TXS = [
        _tx("t1", "2024-01-05", -2500, payee="pay_costco", notes="Weekly groceries"),
        _tx("t2", "2024-01-06", -15000, payee="pay_costco", notes="TV"),
        _tx("t3", "2024-01-07", -4000, payee="pay_shell", notes="fuel"),
        _tx("t4", "2024-01-08", 300000, payee_name="ACME Payroll"),
    ]

    def test_no_filters_returns_everything(self):
        assert [t["id"] for t in filter_transactions(self.TXS, PAYEES)] == ["t1", "t2", "t3", "t4"]

    def test_payee_and_min_amount_combine(self):
        out = filter_transactions(self.TXS, PAYEES, payee="cost", min_amount=10000)
        assert [t["id"] for t in out] == ["t2"]

    def test_notes_case_insensitive(self):
        out = filter_transactions(self.TXS, PAYEES, notes="GROCER")
        assert [t["id"] for t in out] == ["t1"]

    def test_amount_bounds_use_absolute_value(self):
        out = filter_transactions(self.TXS, PAYEES, min_amount=3000, max_amount=20000)
        assert [t["id"] for t in out] == ["t2", "t3"]

    def test_free_text_payee_name(self):
        out = filter_transactions(self.TXS, PAYEES, payee="payroll")
        assert [t["id"] for t in out] == ["t4"]


def test_newest_first_orders_by_date_desc():
    txs = [_tx("a", "2024-01-01", 1), _tx("b", "2024-03-01", 1), _tx("c", "2024-02-01", 1)]
    assert [t["date"] for t in newest_first(txs)] == ["2024-03-01", "2024-02-01", "2024-01-01"]


def test_newest_first_limit_and_stability():
    txs = [_tx("a", "2024-01-01", 1), _tx("b", "2024-01-01", 1), _tx("c", "2024-02-01", 1)]
    assert [t["id"] for t in newest_first(txs, 2)] == ["c", "a"]


class TestSpendingSummary:
    CATEGORIES = {"cat_food": "Food", "cat_rent": "Rent"}

    def test_partition_and_percentages(self):
        txs = [
            _tx("1", "2024-01-01", -100, category="cat_food"),
            _tx("2", "2024-01-02", -100, category="cat_rent"),
            _tx("3", "2024-01-03", -100),
            _tx("4", "2024-01-04", 1000),
        ]
        out = summarize_spending(txs, self.CATEGORIES)
        assert out["total_spent"] == 300
        assert out["total_income"] == 1000
        assert out["net"] == 700
        # independent rounding: 33 + 33 + 33 != 100
        assert [c["percentage"] for c in out["by_category"]] == [33, 33, 33]
        assert {c["category"] for c in out["by_category"]} == {"Food", "Rent", "Uncategorized"}

    def test_sorted_by_amount_desc(self):
        txs = [
            _tx("1", "2024-01-01", -100, category="cat_food"),
            _tx("2", "2024-01-02", -700, category="cat_rent"),
            _tx("3", "2024-01-03", -200, category="cat_food"),
        ]
        out = summarize_spending(txs, self.CATEGORIES)
        assert [(c["category"], c["amount"], c["percentage"]) for c in out["by_category"]] == [
            ("Rent", 700, 70),
            ("Food", 300, 30),
        ]

    def test_half_percentages_round_up(self):
        txs = [
            _tx("1", "2024-01-01", -100, category="cat_food"),
            _tx("2", "2024-01-02", -700, category="cat_rent"),
        ]
        out = summarize_spending(txs, self.CATEGORIES)
        assert {c["category"]: c["percentage"] for c in out["by_category"]} == {"Rent": 88, "Food": 13}

    def test_zero_spend_has_zero_percentages(self):
        out = summarize_spending([_tx("1", "2024-01-01", 500), _tx("2", "2024-01-02", 0)], self.CATEGORIES)
        assert out["total_spent"] == 0
        assert out["by_category"] == []
        assert out["net"] == 500

    def test_unknown_category_id_is_uncategorized(self):
        out = summarize_spending([_tx("1", "2024-01-01", -50, category="gone")], self.CATEGORIES)
        assert out["by_category"] == [{"category": "Uncategorized", "amount": 50, "percentage": 100}]


def test_rollup_recomputes_group_spent():
    budget = {
        "toBudget": 12345,
        "totalBudgeted": 100000,
        "categoryGroups": [
            {
                "name": "Expenses",
                "budgeted": 90000,
                "spent": -1,
                "balance": 89200,
                "categories": [
                    {"name": "Food", "budgeted": 50000, "spent": -500, "balance": 49500, "carryover": True},
                    {"name": "Rent", "budgeted": 40000, "spent": -300, "balance": 39700},
                ],
            },
            {"name": "Empty", "budgeted": 0, "spent": 0, "balance": 0, "categories": []},
        ],
    }
    out = rollup_budget_month("2024-03", budget)
    assert out["month"] == "2024-03"
    assert out["to_budget"] == 123.45
    assert out["total_budgeted"] == 1000.0
    assert out["total_spent"] == 8.0
    group = out["category_groups"][0]
    assert group["spent"] == 8.0
    assert [c["spent"] for c in group["categories"]] == [5.0, 3.0]
    assert group["categories"][0]["carryover"] is True
    assert group["categories"][1]["carryover"] is False
    assert out["category_groups"][1]["spent"] == 0


def test_format_frequency():
    assert format_frequency(Recurrence("weekly", 1)) == "weekly"
    assert format_frequency(Recurrence("weekly", 2)) == "every 2 weekly"


def test_parse_schedule_amount_variants():
    assert parse_schedule_amount(-1500) == SingleAmount(-1500)
    assert parse_schedule_amount({"num1": -1000, "num2": -2000}) == RangeAmount(-1000, -2000)
    assert parse_schedule_amount(None) is None
    assert parse_schedule_amount(True) is None


def test_simplify_schedule():
    raw = {
        "id": "s1",
        "name": "Rent",
        "next_date": "2024-04-01",
        "completed": False,
        "_payee": "pay_landlord",
        "_account": "acc_1",
        "_amount": {"num1": -150000, "num2": -160000},
        "_date": {"frequency": "monthly", "interval": 3},
    }
    out = simplify_schedule(raw, {"acc_1": "Checking"}, {"pay_landlord": "Landlord"})
    assert out["amount"] == -1500.0
    assert out["frequency"] == "every 3 monthly"
    assert out["payee"] == "Landlord"
    assert out["account"] == "Checking"

    bare = simplify_schedule({"id": "s2", "_date": "2024-05-01"}, {}, {})
    assert bare["frequency"] is None
    assert bare["amount"] is None


@pytest.mark.asyncio
async def test_collect_transactions_tags_source_account(ledger):
    ledger.transactions["acc_1"] = [_tx("t1", "2024-01-01", -1)]
    ledger.transactions["acc_2"] = [_tx("t2", "2024-01-02", -2)]
    out = await collect_transactions(ledger, ledger.accounts[:2], "2024-01-01", "2024-01-31")
    assert [(t["id"], t["account_id"]) for t in out] == [("t1", "acc_1"), ("t2", "acc_2")]


@pytest.mark.asyncio
async def test_search_skips_closed_accounts(ledger):
    ledger.transactions["acc_1"] = [_tx("t1", "2024-01-01", -2500, payee="pay_costco", category="cat_food")]
    ledger.transactions["acc_3"] = [_tx("t3", "2024-01-02", -2500, payee="pay_costco")]
    out = await search_transactions(ledger, "2024-01-01", "2024-01-31", payee="costco")
    assert out["total_count"] == 1
    assert out["transactions"][0] == {
        "id": "t1",
        "account": "Checking",
        "date": "2024-01-01",
        "amount": -25.0,
        "payee": "Costco",
        "category": "Food",
        "notes": None,
    }
    assert {q[0] for q in ledger.transaction_queries} == {"acc_1", "acc_2"}


@pytest.mark.asyncio
async def test_spending_summary_only_on_budget_open_accounts(ledger):
    ledger.transactions["acc_1"] = [_tx("t1", "2024-01-01", -1000, category="cat_food")]
    ledger.transactions["acc_2"] = [_tx("t2", "2024-01-01", -9999, category="cat_food")]
    out = await spending_summary(ledger, "2024-01-01", "2024-01-31")
    assert out["period"] == {"start": "2024-01-01", "end": "2024-01-31"}
    assert out["total_spent"] == 10.0
    assert out["by_category"] == [{"category": "Food", "amount": 10.0, "percentage": 100}]
    assert [q[0] for q in ledger.transaction_queries] == ["acc_1"]


@pytest.mark.asyncio
async def test_accounts_with_balances(ledger):
    out = await accounts_with_balances(ledger)
    assert out[0] == {"id": "acc_1", "name": "Checking", "balance": 1234.56, "offbudget": False, "closed": False}
    assert out[1]["offbudget"] is True
    assert out[2]["closed"] is True
