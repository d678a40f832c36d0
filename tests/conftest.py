from __future__ import annotations

import pytest


class FakeLedger:
    """In-memory ledger recording every write."""

    def __init__(self) -> None:
        self.accounts = [
            {"id": "acc_1", "name": "Checking", "offbudget": False, "closed": False},
            {"id": "acc_2", "name": "Savings", "offbudget": True, "closed": False},
            {"id": "acc_3", "name": "Old Card", "offbudget": False, "closed": True},
        ]
        self.balances = {"acc_1": 123456, "acc_2": 500000, "acc_3": 0}
        self.transactions: dict[str, list[dict]] = {"acc_1": [], "acc_2": [], "acc_3": []}
        self.categories = [
            {"id": "cat_food", "name": "Food", "group_id": "grp_1"},
            {"id": "cat_rent", "name": "Rent", "group_id": "grp_1"},
            {"id": "cat_salary", "name": "Salary", "group_id": "grp_2"},
        ]
        self.groups = [
            {"id": "grp_1", "name": "Expenses", "is_income": False},
            {"id": "grp_2", "name": "Income", "is_income": True},
        ]
        self.payees = [
            {"id": "pay_costco", "name": "Costco"},
            {"id": "pay_landlord", "name": "Landlord"},
            {"id": "pay_xfer", "name": "Transfer: Savings", "transfer_acct": "acc_2"},
        ]
        self.schedules: list[dict] = []
        self.budget: dict = {"month": "2024-03", "toBudget": 0, "totalBudgeted": 0, "categoryGroups": []}
        self.months = ["2024-02", "2024-03"]
        self.writes: list[tuple] = []
        self.transaction_queries: list[tuple] = []
        self.sync_count = 0

    async def get_accounts(self):
        return list(self.accounts)

    async def get_account_balance(self, account_id):
        return self.balances[account_id]

    async def get_transactions(self, account_id, start_date, end_date):
        self.transaction_queries.append((account_id, start_date, end_date))
        return [dict(t) for t in self.transactions.get(account_id, [])]

    async def add_transaction(self, transaction):
        self.writes.append(("add_transaction", dict(transaction)))
        return "tx_new"

    async def update_transaction(self, transaction_id, fields):
        self.writes.append(("update_transaction", transaction_id, dict(fields)))

    async def delete_transaction(self, transaction_id):
        self.writes.append(("delete_transaction", transaction_id))

    async def get_categories(self):
        return list(self.categories)

    async def get_category_groups(self):
        return list(self.groups)

    async def get_payees(self):
        return list(self.payees)

    async def create_payee(self, name):
        self.writes.append(("create_payee", name))
        payee = {"id": f"pay_{len(self.payees)}", "name": name}
        self.payees.append(payee)
        return payee["id"]

    async def get_budget_months(self):
        return list(self.months)

    async def get_budget_month(self, month):
        return self.budget

    async def set_budget_amount(self, month, category_id, amount):
        self.writes.append(("set_budget_amount", month, category_id, amount))

    async def get_schedules(self):
        return list(self.schedules)

    async def create_schedule(self, schedule):
        self.writes.append(("create_schedule", schedule))
        return "sched_new"

    async def update_schedule(self, schedule_id, fields):
        self.writes.append(("update_schedule", schedule_id, dict(fields)))

    async def delete_schedule(self, schedule_id):
        self.writes.append(("delete_schedule", schedule_id))

    async def sync(self):
        self.sync_count += 1


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()
