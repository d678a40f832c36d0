"""Tool dispatch: contracts, handlers and the ``run_tool`` entry point.

Every handler takes the injected ledger and a validated input model and
returns a plain dict; ``run_tool`` checks it against the output model and
renders the text echo from the same payload.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

import pydantic

from actual_skill import aggregate
from actual_skill import schemas as s
from actual_skill.errors import SkillError, ValidationError
from actual_skill.resolver import find_by_name, name_map, require_resolution, try_resolution
from actual_skill.units import current_month, days_ago, from_minor, month_start, to_minor, today

logger = logging.getLogger(__name__)


class Ledger(Protocol):
    async def get_accounts(self) -> list[dict]: ...
    async def get_account_balance(self, account_id: str) -> int: ...
    async def get_transactions(self, account_id: str, start_date: str, end_date: str) -> list[dict]: ...
    async def add_transaction(self, transaction: dict) -> str: ...
    async def update_transaction(self, transaction_id: str, fields: dict) -> None: ...
    async def delete_transaction(self, transaction_id: str) -> None: ...
    async def get_categories(self) -> list[dict]: ...
    async def get_category_groups(self) -> list[dict]: ...
    async def get_payees(self) -> list[dict]: ...
    async def create_payee(self, name: str) -> str: ...
    async def get_budget_months(self) -> list[str]: ...
    async def get_budget_month(self, month: str) -> dict: ...
    async def set_budget_amount(self, month: str, category_id: str, amount: int) -> None: ...
    async def get_schedules(self) -> list[dict]: ...
    async def create_schedule(self, schedule: dict) -> str: ...
    async def update_schedule(self, schedule_id: str, fields: dict) -> None: ...
    async def delete_schedule(self, schedule_id: str) -> None: ...
    async def sync(self) -> None: ...


@dataclass
class ToolResult:
    payload: dict
    text: str


def render(payload: dict) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _num(value: float) -> str:
    """35.0 -> '35', 12.5 -> '12.5'."""
    return str(int(value)) if float(value).is_integer() else str(value)


# ---------------------------------------------------------------------------
# Tool metadata
# ---------------------------------------------------------------------------

TOOL_DOCS: dict[str, dict[str, Any]] = {
    # -- Accounts --
    "get_accounts": {
        "title": "Get all accounts",
        "desc": "Get all accounts with their names, types, and current balances. "
                "Use this to see available accounts before adding transactions.",
        "input": s.NoArgs,
        "output": s.AccountsOutput,
    },
    "get_account_balance": {
        "title": "Get account balance",
        "desc": "Get the current balance of a specific account by ID or name.",
        "input": s.AccountInput,
        "output": s.AccountBalanceOutput,
    },
    # -- Transactions --
    "add_transaction": {
        "title": "Add transaction",
        "desc": "Add a new transaction (expense or income). Amount should be positive for income, "
                "negative for expenses. Use payee_name to specify who you paid or received from.",
        "input": s.AddTransactionInput,
        "output": s.AddTransactionOutput,
    },
    "get_transactions": {
        "title": "Get transactions",
        "desc": "Get transactions for an account within a date range. Returns transaction details "
                "including amount, payee, category, and notes.",
        "input": s.GetTransactionsInput,
        "output": s.TransactionsOutput,
    },
    "search_transactions": {
        "title": "Search transactions",
        "desc": "Search transactions across all accounts by payee name, notes, or amount range.",
        "input": s.SearchTransactionsInput,
        "output": s.SearchOutput,
    },
    "update_transaction": {
        "title": "Update transaction",
        "desc": "Update an existing transaction. You can modify the amount, category, payee, notes, "
                "date, or cleared status. Only pass fields to change.",
        "input": s.UpdateTransactionInput,
        "output": s.ActionOutput,
    },
    "delete_transaction": {
        "title": "Delete transaction",
        "desc": "Delete a transaction by its ID. This action cannot be undone.",
        "input": s.IdInput,
        "output": s.ActionOutput,
    },
    # -- Categories / budget --
    "get_categories": {
        "title": "Get all categories",
        "desc": "Get all spending categories organized by groups. "
                "Use this to find category IDs for adding transactions.",
        "input": s.NoArgs,
        "output": s.CategoriesOutput,
    },
    "get_budget_months": {
        "title": "List budget months",
        "desc": "List the months (YYYY-MM) that have budget data.",
        "input": s.NoArgs,
        "output": s.BudgetMonthsOutput,
    },
    "get_budget_month": {
        "title": "Get monthly budget",
        "desc": "Get the budget summary for a specific month, including budgeted amounts, spending, "
                "and remaining balance for each category.",
        "input": s.MonthInput,
        "output": s.BudgetMonthOutput,
    },
    "set_budget_amount": {
        "title": "Set category budget",
        "desc": "Set the budgeted amount for a specific category in a given month.",
        "input": s.SetBudgetAmountInput,
        "output": s.ActionOutput,
    },
    # -- Payees / summary --
    "get_payees": {
        "title": "Get payees",
        "desc": "Get all payees (merchants/people you pay or receive money from). "
                "Useful for finding exact payee names.",
        "input": s.GetPayeesInput,
        "output": s.PayeesOutput,
    },
    "get_spending_summary": {
        "title": "Get spending summary",
        "desc": "Get a spending summary by category for a specific period. "
                "Great for understanding where money is going.",
        "input": s.PeriodInput,
        "output": s.SpendingSummaryOutput,
    },
    # -- Schedules --
    "get_schedules": {
        "title": "Get schedules",
        "desc": "Get all scheduled/recurring transactions. Shows upcoming bills, subscriptions, "
                "and recurring income.",
        "input": s.NoArgs,
        "output": s.SchedulesOutput,
    },
    "create_schedule": {
        "title": "Create schedule",
        "desc": "Create a new scheduled/recurring transaction. Great for setting up recurring bills, "
                "subscriptions, or regular income.",
        "input": s.CreateScheduleInput,
        "output": s.CreateScheduleOutput,
    },
    "update_schedule": {
        "title": "Update schedule",
        "desc": "Update an existing schedule. Only pass fields to change.",
        "input": s.UpdateScheduleInput,
        "output": s.ActionOutput,
    },
    "delete_schedule": {
        "title": "Delete schedule",
        "desc": "Delete a scheduled/recurring transaction by its ID.",
        "input": s.IdInput,
        "output": s.ActionOutput,
    },
    # -- Sync --
    "sync_budget": {
        "title": "Sync budget",
        "desc": "Synchronize the budget with the server. Use this after making changes to ensure "
                "data is saved.",
        "input": s.NoArgs,
        "output": s.ActionOutput,
    },
}


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _describe_error(err: dict) -> str:
    loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
    msg = err.get("msg", "invalid value").removeprefix("Value error, ")
    return f"{loc}: {msg}"


def parse_args(model: type[s.ToolInput], args: Any) -> s.ToolInput:
    if not isinstance(args, dict):
        raise ValidationError("Arguments must be a JSON object")
    try:
        return model.model_validate(args)
    except pydantic.ValidationError as e:
        details = "; ".join(_describe_error(err) for err in e.errors())
        raise ValidationError(f"Invalid arguments: {details}") from e


# ---------------------------------------------------------------------------
# Tool implementations
# ---------------------------------------------------------------------------

async def _find_or_create_payee(ledger: Ledger, name: str) -> str:
    found = find_by_name(name, await ledger.get_payees())
    if found:
        return found["id"]
    logger.info("Creating payee %r", name)
    return await ledger.create_payee(name)


# -- Accounts --

async def tool_get_accounts(ledger: Ledger, args: s.NoArgs) -> dict:
    return {"accounts": await aggregate.accounts_with_balances(ledger)}


async def tool_get_account_balance(ledger: Ledger, args: s.AccountInput) -> dict:
    account = require_resolution(args.account, await ledger.get_accounts(), "Account")
    balance = await ledger.get_account_balance(account["id"])
    return {"account_name": account["name"], "balance": from_minor(balance)}


# -- Transactions --

async def tool_add_transaction(ledger: Ledger, args: s.AddTransactionInput) -> dict:
    account = require_resolution(args.account, await ledger.get_accounts(), "Account")

    category_id = None
    if args.category:
        found = try_resolution(args.category, await ledger.get_categories())
        category_id = found["id"] if found else None

    transaction_id = await ledger.add_transaction({
        "account": account["id"],
        "date": args.date or today(),
        "amount": to_minor(args.amount),
        "payee_name": args.payee_name,
        "category": category_id,
        "notes": args.notes,
    })
    direction = "expense" if args.amount < 0 else "income"
    return {
        "success": True,
        "transaction_id": transaction_id,
        "message": f"Transaction added: {_num(abs(args.amount))} {direction} to {account['name']}",
    }


async def tool_get_transactions(ledger: Ledger, args: s.GetTransactionsInput) -> dict:
    account = require_resolution(args.account, await ledger.get_accounts(), "Account")
    end_date = args.end_date or today()
    start_date = args.start_date or days_ago(30)

    transactions, payees, categories = await asyncio.gather(
        ledger.get_transactions(account["id"], start_date, end_date),
        ledger.get_payees(),
        ledger.get_categories(),
    )
    payee_names = name_map(payees)
    category_names = name_map(categories)

    formatted = [
        {
            "id": t["id"],
            "date": t.get("date", ""),
            "amount": from_minor(t.get("amount", 0)),
            "payee": aggregate.payee_label(t, payee_names),
            "category": category_names.get(t["category"]) if t.get("category") else None,
            "notes": t.get("notes"),
            "cleared": t.get("cleared"),
        }
        for t in transactions
    ]
    return {"account_name": account["name"], "transactions": formatted, "total_count": len(formatted)}


async def tool_search_transactions(ledger: Ledger, args: s.SearchTransactionsInput) -> dict:
    return await aggregate.search_transactions(
        ledger,
        args.start_date or days_ago(90),
        args.end_date or today(),
        payee=args.payee,
        notes=args.notes,
        min_amount=to_minor(args.min_amount) if args.min_amount is not None else None,
        max_amount=to_minor(args.max_amount) if args.max_amount is not None else None,
        limit=args.limit or aggregate.DEFAULT_SEARCH_LIMIT,
    )


async def tool_update_transaction(ledger: Ledger, args: s.UpdateTransactionInput) -> dict:
    updates: dict[str, Any] = {}
    if args.amount is not None:
        updates["amount"] = to_minor(args.amount)
    if args.category:
        # unresolved category is left out rather than failing the update
        found = try_resolution(args.category, await ledger.get_categories())
        if found:
            updates["category"] = found["id"]
    for key in ("payee_name", "notes", "date", "cleared"):
        value = getattr(args, key)
        if value is not None:
            updates[key] = value

    await ledger.update_transaction(args.id, updates)
    return {"success": True, "message": f"Transaction {args.id} updated successfully"}


async def tool_delete_transaction(ledger: Ledger, args: s.IdInput) -> dict:
    await ledger.delete_transaction(args.id)
    return {"success": True, "message": f"Transaction {args.id} deleted successfully"}


# -- Categories / budget --

async def tool_get_categories(ledger: Ledger, args: s.NoArgs) -> dict:
    groups, categories = await asyncio.gather(ledger.get_category_groups(), ledger.get_categories())
    return {
        "category_groups": [
            {
                "id": g["id"],
                "name": g.get("name", ""),
                "is_income": bool(g.get("is_income")),
                "categories": [
                    {"id": c["id"], "name": c.get("name", "")}
                    for c in categories if c.get("group_id") == g["id"]
                ],
            }
            for g in groups
        ],
    }


async def tool_get_budget_months(ledger: Ledger, args: s.NoArgs) -> dict:
    return {"months": await ledger.get_budget_months()}


async def tool_get_budget_month(ledger: Ledger, args: s.MonthInput) -> dict:
    month = args.month or current_month()
    budget = await ledger.get_budget_month(month)
    return aggregate.rollup_budget_month(month, budget)


async def tool_set_budget_amount(ledger: Ledger, args: s.SetBudgetAmountInput) -> dict:
    month = args.month or current_month()
    category = require_resolution(args.category, await ledger.get_categories(), "Category")
    await ledger.set_budget_amount(month, category["id"], to_minor(args.amount))
    return {
        "success": True,
        "message": f'Set budget for "{category["name"]}" to {_num(args.amount)} for {month}',
    }


# -- Payees / summary --

async def tool_get_payees(ledger: Ledger, args: s.GetPayeesInput) -> dict:
    payees = [p for p in await ledger.get_payees() if not p.get("transfer_acct")]
    if args.search:
        q = args.search.lower()
        payees = [p for p in payees if q in (p.get("name") or "").lower()]
    return {
        "payees": [{"id": p["id"], "name": p.get("name", "")} for p in payees],
        "total_count": len(payees),
    }


async def tool_get_spending_summary(ledger: Ledger, args: s.PeriodInput) -> dict:
    return await aggregate.spending_summary(
        ledger, args.start_date or month_start(), args.end_date or today(),
    )


# -- Schedules --

async def tool_get_schedules(ledger: Ledger, args: s.NoArgs) -> dict:
    schedules, accounts, payees = await asyncio.gather(
        ledger.get_schedules(), ledger.get_accounts(), ledger.get_payees(),
    )
    account_names = name_map(accounts)
    payee_names = name_map(payees)
    formatted = [aggregate.simplify_schedule(sc, account_names, payee_names) for sc in schedules]
    return {"schedules": formatted, "total_count": len(formatted)}


async def tool_create_schedule(ledger: Ledger, args: s.CreateScheduleInput) -> dict:
    account = require_resolution(args.account, await ledger.get_accounts(), "Account")
    payee_id = await _find_or_create_payee(ledger, args.payee) if args.payee else None

    schedule_id = await ledger.create_schedule({
        "name": args.name,
        "account": account["id"],
        "payee": payee_id,
        "amount": to_minor(args.amount),
        "posts_transaction": bool(args.posts_transaction),
        "date": args.recurrence().to_ledger(),
    })
    return {
        "success": True,
        "schedule_id": schedule_id,
        "message": f'Created {args.frequency} schedule "{args.name or "Unnamed"}" starting {args.start_date}',
    }


async def tool_update_schedule(ledger: Ledger, args: s.UpdateScheduleInput) -> dict:
    fields: dict[str, Any] = {}
    if args.name is not None:
        fields["name"] = args.name
    if args.amount is not None:
        fields["amount"] = to_minor(args.amount)
    if args.posts_transaction is not None:
        fields["posts_transaction"] = args.posts_transaction
    if args.account:
        fields["account"] = require_resolution(args.account, await ledger.get_accounts(), "Account")["id"]
    if args.payee:
        fields["payee"] = await _find_or_create_payee(ledger, args.payee)
    if not fields:
        raise ValidationError("Nothing to update. Pass at least one of name, account, payee, amount, posts_transaction")

    await ledger.update_schedule(args.id, fields)
    return {"success": True, "message": f"Schedule {args.id} updated successfully"}


async def tool_delete_schedule(ledger: Ledger, args: s.IdInput) -> dict:
    await ledger.delete_schedule(args.id)
    return {"success": True, "message": f"Schedule {args.id} deleted successfully"}


# -- Sync --

async def tool_sync_budget(ledger: Ledger, args: s.NoArgs) -> dict:
    await ledger.sync()
    return {"success": True, "message": "Budget synchronized successfully"}


# ---------------------------------------------------------------------------
# Dispatch table
# ---------------------------------------------------------------------------

Handler = Callable[[Ledger, Any], Awaitable[dict]]

HANDLERS: dict[str, Handler] = {
    "get_accounts": tool_get_accounts,
    "get_account_balance": tool_get_account_balance,
    "add_transaction": tool_add_transaction,
    "get_transactions": tool_get_transactions,
    "search_transactions": tool_search_transactions,
    "update_transaction": tool_update_transaction,
    "delete_transaction": tool_delete_transaction,
    "get_categories": tool_get_categories,
    "get_budget_months": tool_get_budget_months,
    "get_budget_month": tool_get_budget_month,
    "set_budget_amount": tool_set_budget_amount,
    "get_payees": tool_get_payees,
    "get_spending_summary": tool_get_spending_summary,
    "get_schedules": tool_get_schedules,
    "create_schedule": tool_create_schedule,
    "update_schedule": tool_update_schedule,
    "delete_schedule": tool_delete_schedule,
    "sync_budget": tool_sync_budget,
}


async def run_tool(ledger: Ledger, name: str, args: dict | None = None) -> ToolResult:
    doc = TOOL_DOCS.get(name)
    handler = HANDLERS.get(name)
    if not doc or not handler:
        raise ValidationError(f"Unknown tool: {name}. Use --list to see available tools.")

    params = parse_args(doc["input"], args if args is not None else {})
    logger.info("Running tool %s", name)
    try:
        output = await handler(ledger, params)
    except SkillError as e:
        logger.warning("Tool %s failed: %s", name, e)
        raise

    payload = doc["output"].model_validate(output).model_dump(mode="json", exclude_none=True)
    return ToolResult(payload=payload, text=render(payload))
