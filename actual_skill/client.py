"""Async HTTP client for the Actual Budget ledger bridge.

Every route lives under ``{server_url}/v1/budgets/{budget_id}`` and answers
with ``{"data": ...}``. Mutating calls are followed by a sync before they
return; a failed sync after a successful mutation raises
``PostMutationSyncError``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from actual_skill.config import Settings
from actual_skill.errors import DataAccessError, PostMutationSyncError

logger = logging.getLogger(__name__)


def _drop_none(d: dict) -> dict:
    return {k: v for k, v in d.items() if v is not None}


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or resp.reason_phrase
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)
    return str(body)


class LedgerClient:
    """Data access for accounts, transactions, categories, payees, budgets and schedules."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return f"{self.settings.server_url}/v1/budgets/{self.settings.budget_id}"

    # -- lifecycle ----------------------------------------------------------

    async def connect(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {
                "Content-Type": "application/json",
                "x-api-key": self.settings.api_key,
            }
            if self.settings.encryption_password:
                headers["budget-encryption-password"] = self.settings.encryption_password
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.settings.timeout,
                transport=self._transport,
            )
            logger.info("Connected ledger client to %s", self.settings.server_url)
        return self._client

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> LedgerClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # -- transport helpers --------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json: dict | None = None,
    ) -> Any:
        client = await self.connect()
        logger.debug("%s %s", method, path)
        try:
            resp = await client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            raise DataAccessError(f"Ledger request failed: {method} {path}: {e}") from e
        if resp.status_code == 401:
            raise DataAccessError(
                "Ledger rejected credentials (401). Check ACTUAL_API_KEY", status=401,
            )
        if resp.is_error:
            raise DataAccessError(
                f"Ledger error {resp.status_code} on {method} {path}: {_error_message(resp)}",
                status=resp.status_code,
            )
        if not resp.content:
            return None
        try:
            body = resp.json()
        except ValueError as e:
            raise DataAccessError(f"Ledger returned invalid JSON for {method} {path}") from e
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    async def _mutate(self, operation: str, method: str, path: str, *, json: dict | None = None) -> Any:
        result = await self._request(method, path, json=json)
        try:
            await self.sync()
        except DataAccessError as e:
            raise PostMutationSyncError(operation, e) from e
        return result

    async def sync(self) -> None:
        await self._request("POST", "/sync")

    # -- accounts -----------------------------------------------------------

    async def get_accounts(self) -> list[dict]:
        return await self._request("GET", "/accounts") or []

    async def get_account_balance(self, account_id: str) -> int:
        return int(await self._request("GET", f"/accounts/{account_id}/balance") or 0)

    # -- transactions -------------------------------------------------------

    async def get_transactions(self, account_id: str, start_date: str, end_date: str) -> list[dict]:
        data = await self._request(
            "GET",
            f"/accounts/{account_id}/transactions",
            params={"since_date": start_date, "until_date": end_date},
        )
        return data or []

    async def import_transactions(self, account_id: str, transactions: list[dict]) -> dict:
        payload = [_drop_none({**t, "account": account_id}) for t in transactions]
        data = await self._mutate(
            "import_transactions",
            "POST",
            f"/accounts/{account_id}/transactions/import",
            json={"transactions": payload},
        ) or {}
        return {"added": data.get("added", []), "updated": data.get("updated", [])}

    async def add_transaction(self, transaction: dict) -> str:
        fields = ("date", "amount", "payee", "payee_name", "category", "notes", "cleared")
        tx = {k: transaction.get(k) for k in fields}
        result = await self.import_transactions(transaction["account"], [tx])
        return result["added"][0] if result["added"] else "unknown"

    async def update_transaction(self, transaction_id: str, fields: dict) -> None:
        await self._mutate(
            "update_transaction", "PATCH", f"/transactions/{transaction_id}",
            json={"transaction": fields},
        )

    async def delete_transaction(self, transaction_id: str) -> None:
        await self._mutate("delete_transaction", "DELETE", f"/transactions/{transaction_id}")

    # -- categories / payees ------------------------------------------------

    async def get_categories(self) -> list[dict]:
        return await self._request("GET", "/categories") or []

    async def get_category_groups(self) -> list[dict]:
        return await self._request("GET", "/categorygroups") or []

    async def get_payees(self) -> list[dict]:
        return await self._request("GET", "/payees") or []

    async def create_payee(self, name: str) -> str:
        return await self._mutate("create_payee", "POST", "/payees", json={"payee": {"name": name}})

    # -- budget -------------------------------------------------------------

    async def get_budget_months(self) -> list[str]:
        return await self._request("GET", "/months") or []

    async def get_budget_month(self, month: str) -> dict:
        budget = await self._request("GET", f"/months/{month}") or {}
        groups = []
        for g in budget.get("categoryGroups") or []:
            groups.append({
                "id": g.get("id") or "",
                "name": g.get("name") or "",
                "budgeted": g.get("budgeted") or 0,
                "spent": g.get("spent") or 0,
                "balance": g.get("balance") or 0,
                "categories": [
                    {
                        "id": c.get("id") or "",
                        "name": c.get("name") or "",
                        "budgeted": c.get("budgeted") or 0,
                        "spent": c.get("spent") or 0,
                        "balance": c.get("balance") or 0,
                        "carryover": bool(c.get("carryover")),
                    }
                    for c in g.get("categories") or []
                ],
            })
        return {
            "month": budget.get("month") or month,
            "incomeAvailable": budget.get("incomeAvailable") or 0,
            "lastMonthOverspent": budget.get("lastMonthOverspent") or 0,
            "forNextMonth": budget.get("forNextMonth") or 0,
            "totalBudgeted": budget.get("totalBudgeted") or 0,
            "toBudget": budget.get("toBudget") or 0,
            "categoryGroups": groups,
        }

    async def set_budget_amount(self, month: str, category_id: str, amount: int) -> None:
        await self._mutate(
            "set_budget_amount", "PATCH", f"/months/{month}/categories/{category_id}",
            json={"category": {"budgeted": amount}},
        )

    # -- schedules ----------------------------------------------------------

    async def get_schedules(self) -> list[dict]:
        return await self._request("GET", "/schedules") or []

    async def create_schedule(self, schedule: dict) -> str:
        return await self._mutate(
            "create_schedule", "POST", "/schedules", json={"schedule": _drop_none(schedule)},
        )

    async def update_schedule(self, schedule_id: str, fields: dict) -> None:
        await self._mutate(
            "update_schedule", "PATCH", f"/schedules/{schedule_id}", json={"schedule": fields},
        )

    async def delete_schedule(self, schedule_id: str) -> None:
        await self._mutate("delete_schedule", "DELETE", f"/schedules/{schedule_id}")
