"""Cross-entity views built from raw ledger records.

Pure helpers (``filter_transactions``, ``summarize_spending``,
``rollup_budget_month``, ``simplify_schedule``) work on plain dicts; the
async wrappers fetch what they need from a ledger first.
"""

from __future__ import annotations

import asyncio
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from actual_skill.resolver import name_map
from actual_skill.schemas import Recurrence, parse_schedule_amount
from actual_skill.units import from_minor

UNCATEGORIZED = "Uncategorized"
DEFAULT_SEARCH_LIMIT = 50


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

async def collect_transactions(ledger: Any, accounts: list[dict], start_date: str, end_date: str) -> list[dict]:
    """Fetch transactions for every account concurrently, tagged with ``account_id``."""
    batches = await asyncio.gather(
        *(ledger.get_transactions(a["id"], start_date, end_date) for a in accounts)
    )
    tagged: list[dict] = []
    for acct, txs in zip(accounts, batches):
        tagged.extend({**t, "account_id": acct["id"]} for t in txs)
    return tagged


def payee_label(t: dict, payee_names: dict[str, str]) -> str | None:
    if t.get("payee"):
        return payee_names.get(t["payee"])
    return t.get("payee_name")


def filter_transactions(
    transactions: Iterable[dict],
    payee_names: dict[str, str],
    *,
    payee: str | None = None,
    notes: str | None = None,
    min_amount: int | None = None,
    max_amount: int | None = None,
) -> list[dict]:
    """AND-combine the supplied filters. Amount bounds are absolute minor units."""
    txs = list(transactions)
    if payee:
        needle = payee.lower()
        txs = [t for t in txs if needle in (payee_label(t, payee_names) or "").lower()]
    if notes:
        needle = notes.lower()
        txs = [t for t in txs if needle in (t.get("notes") or "").lower()]
    if min_amount is not None:
        txs = [t for t in txs if abs(t.get("amount", 0)) >= min_amount]
    if max_amount is not None:
        txs = [t for t in txs if abs(t.get("amount", 0)) <= max_amount]
    return txs


def newest_first(transactions: Iterable[dict], limit: int | None = None) -> list[dict]:
    # ISO dates sort lexicographically; sorted() is stable for equal dates.
    ordered = sorted(transactions, key=lambda t: t.get("date", ""), reverse=True)
    return ordered[:limit] if limit is not None else ordered


async def search_transactions(
    ledger: Any,
    start_date: str,
    end_date: str,
    *,
    payee: str | None = None,
    notes: str | None = None,
    min_amount: int | None = None,
    max_amount: int | None = None,
    limit: int = DEFAULT_SEARCH_LIMIT,
) -> dict:
    accounts, payees, categories = await asyncio.gather(
        ledger.get_accounts(), ledger.get_payees(), ledger.get_categories(),
    )
    payee_names = name_map(payees)
    category_names = name_map(categories)
    account_names = name_map(accounts)

    open_accounts = [a for a in accounts if not a.get("closed")]
    txs = await collect_transactions(ledger, open_accounts, start_date, end_date)
    txs = filter_transactions(
        txs, payee_names,
        payee=payee, notes=notes, min_amount=min_amount, max_amount=max_amount,
    )
    results = [
        {
            "id": t["id"],
            "account": account_names.get(t["account_id"]) or "Unknown",
            "date": t.get("date", ""),
            "amount": from_minor(t.get("amount", 0)),
            "payee": payee_label(t, payee_names),
            "category": category_names.get(t["category"]) if t.get("category") else None,
            "notes": t.get("notes"),
        }
        for t in newest_first(txs, limit)
    ]
    return {"transactions": results, "total_count": len(results)}


# ---------------------------------------------------------------------------
# Spending summary
# ---------------------------------------------------------------------------

def _percent(part: int, total: int) -> int:
    # halves round up: 12.5 -> 13
    if total <= 0:
        return 0
    return int((Decimal(part) * 100 / Decimal(total)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def summarize_spending(transactions: Iterable[dict], category_names: dict[str, str]) -> dict:
    """Split into per-category spend (negative amounts) and income (the rest).

    Amounts stay in minor units; percentages are rounded independently and
    need not sum to 100.
    """
    totals: dict[str, int] = {}
    total_spent = 0
    total_income = 0
    for t in transactions:
        amount = t.get("amount", 0)
        if amount < 0:
            total_spent += -amount
            name = category_names.get(t["category"]) if t.get("category") else None
            name = name or UNCATEGORIZED
            totals[name] = totals.get(name, 0) + -amount
        else:
            total_income += amount

    by_category = [
        {
            "category": name,
            "amount": amount,
            "percentage": _percent(amount, total_spent),
        }
        for name, amount in totals.items()
    ]
    by_category.sort(key=lambda c: c["amount"], reverse=True)
    return {
        "total_spent": total_spent,
        "total_income": total_income,
        "net": total_income - total_spent,
        "by_category": by_category,
    }


async def spending_summary(ledger: Any, start_date: str, end_date: str) -> dict:
    accounts, categories = await asyncio.gather(ledger.get_accounts(), ledger.get_categories())
    on_budget = [a for a in accounts if not a.get("closed") and not a.get("offbudget")]
    txs = await collect_transactions(ledger, on_budget, start_date, end_date)
    summary = summarize_spending(txs, name_map(categories))
    return {
        "period": {"start": start_date, "end": end_date},
        "total_spent": from_minor(summary["total_spent"]),
        "total_income": from_minor(summary["total_income"]),
        "net": from_minor(summary["net"]),
        "by_category": [
            {**c, "amount": from_minor(c["amount"])} for c in summary["by_category"]
        ],
    }


# ---------------------------------------------------------------------------
# Budget month
# ---------------------------------------------------------------------------

def rollup_budget_month(month: str, budget: dict) -> dict:
    """Re-express spend as positive magnitudes and recompute group totals.

    The group-level ``spent`` from the ledger is ignored in favour of the
    sum of absolute category spend.
    """
    total_spent = 0
    groups = []
    for g in budget.get("categoryGroups", []):
        cats = g.get("categories", [])
        group_spent = sum(abs(c.get("spent", 0)) for c in cats)
        total_spent += group_spent
        groups.append({
            "name": g.get("name", ""),
            "budgeted": from_minor(g.get("budgeted", 0)),
            "spent": from_minor(group_spent),
            "balance": from_minor(g.get("balance", 0)),
            "categories": [
                {
                    "name": c.get("name", ""),
                    "budgeted": from_minor(c.get("budgeted", 0)),
                    "spent": from_minor(abs(c.get("spent", 0))),
                    "balance": from_minor(c.get("balance", 0)),
                    "carryover": bool(c.get("carryover")),
                }
                for c in cats
            ],
        })
    return {
        "month": month,
        "to_budget": from_minor(budget.get("toBudget", 0)),
        "total_budgeted": from_minor(budget.get("totalBudgeted", 0)),
        "total_spent": from_minor(total_spent),
        "category_groups": groups,
    }


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

async def accounts_with_balances(ledger: Any) -> list[dict]:
    accounts = await ledger.get_accounts()
    balances = await asyncio.gather(*(ledger.get_account_balance(a["id"]) for a in accounts))
    return [
        {
            "id": a["id"],
            "name": a.get("name", ""),
            "balance": from_minor(balance),
            "offbudget": bool(a.get("offbudget")),
            "closed": bool(a.get("closed")),
        }
        for a, balance in zip(accounts, balances)
    ]


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------

def format_frequency(recurrence: Recurrence) -> str:
    if recurrence.interval == 1:
        return recurrence.frequency
    return f"every {recurrence.interval} {recurrence.frequency}"


def simplify_schedule(s: dict, account_names: dict[str, str], payee_names: dict[str, str]) -> dict:
    amount = parse_schedule_amount(s.get("_amount", s.get("amount")))
    recurrence = Recurrence.from_ledger(s.get("_date", s.get("date")))
    payee_id = s.get("_payee") or s.get("payee")
    account_id = s.get("_account") or s.get("account")
    return {
        "id": s["id"],
        "name": s.get("name"),
        "next_date": s.get("next_date"),
        "frequency": format_frequency(recurrence) if recurrence else None,
        "amount": from_minor(amount.display()) if amount else None,
        "payee": payee_names.get(payee_id) if payee_id else None,
        "account": account_names.get(account_id) if account_id else None,
        "completed": s.get("completed"),
        "posts_transaction": s.get("posts_transaction"),
    }
