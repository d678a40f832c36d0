"""Typed contracts for tool inputs/outputs and schedule value types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator

from actual_skill.errors import ValidationError
from actual_skill.units import validate_date, validate_month

Frequency = Literal["daily", "weekly", "monthly", "yearly"]
EndMode = Literal["never", "after_n_occurrences", "on_date"]

IsoDate = Annotated[str, AfterValidator(validate_date)]
IsoMonth = Annotated[str, AfterValidator(validate_month)]


# ---------------------------------------------------------------------------
# Schedule value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SingleAmount:
    value: int

    def display(self) -> int:
        return self.value


@dataclass(frozen=True)
class RangeAmount:
    """Approximate/between rule; only the first endpoint is shown."""

    num1: int
    num2: int

    def display(self) -> int:
        return self.num1


ScheduleAmount = Union[SingleAmount, RangeAmount]


def parse_schedule_amount(raw: Any) -> ScheduleAmount | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return SingleAmount(int(raw))
    if isinstance(raw, dict) and "num1" in raw:
        return RangeAmount(int(raw["num1"]), int(raw.get("num2", raw["num1"])))
    return None


@dataclass(frozen=True)
class Recurrence:
    frequency: str
    interval: int = 1
    start: str | None = None
    end_mode: str = "never"
    end_occurrences: int | None = None
    end_date: str | None = None

    @classmethod
    def from_ledger(cls, raw: Any) -> Recurrence | None:
        if not isinstance(raw, dict) or not raw.get("frequency"):
            return None
        return cls(
            frequency=raw["frequency"],
            interval=raw.get("interval") or 1,
            start=raw.get("start"),
            end_mode=raw.get("endMode") or "never",
            end_occurrences=raw.get("endOccurrences"),
            end_date=raw.get("endDate"),
        )

    def to_ledger(self) -> dict:
        out: dict[str, Any] = {
            "frequency": self.frequency,
            "start": self.start,
            "interval": self.interval,
            "endMode": self.end_mode,
        }
        if self.end_occurrences is not None:
            out["endOccurrences"] = self.end_occurrences
        if self.end_date is not None:
            out["endDate"] = self.end_date
        return out


# ---------------------------------------------------------------------------
# Tool inputs
# ---------------------------------------------------------------------------

class ToolInput(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True, allow_inf_nan=False)


class NoArgs(ToolInput):
    pass


class IdInput(ToolInput):
    id: str = Field(description="Entity ID")


class AccountInput(ToolInput):
    account: str = Field(description="Account ID or name")


class AddTransactionInput(ToolInput):
    account: str = Field(description="Account ID or name")
    amount: float = Field(description="Amount in currency (positive for income, negative for expense)")
    payee_name: Optional[str] = Field(None, description="Payee/merchant name")
    category: Optional[str] = Field(None, description="Category ID or name")
    notes: Optional[str] = Field(None, description="Transaction notes")
    date: Optional[IsoDate] = Field(None, description="Date in YYYY-MM-DD format (defaults to today)")


class GetTransactionsInput(ToolInput):
    account: str = Field(description="Account ID or name")
    start_date: Optional[IsoDate] = Field(None, description="Start date in YYYY-MM-DD format (defaults to 30 days ago)")
    end_date: Optional[IsoDate] = Field(None, description="End date in YYYY-MM-DD format (defaults to today)")


class SearchTransactionsInput(ToolInput):
    payee: Optional[str] = Field(None, description="Search by payee name (partial match)")
    notes: Optional[str] = Field(None, description="Search by notes content (partial match)")
    min_amount: Optional[float] = Field(None, ge=0, description="Minimum amount (absolute value)")
    max_amount: Optional[float] = Field(None, ge=0, description="Maximum amount (absolute value)")
    start_date: Optional[IsoDate] = Field(None, description="Start date in YYYY-MM-DD format (defaults to 90 days ago)")
    end_date: Optional[IsoDate] = Field(None, description="End date in YYYY-MM-DD format (defaults to today)")
    limit: Optional[int] = Field(None, ge=1, description="Maximum number of results (default 50)")


class UpdateTransactionInput(ToolInput):
    id: str = Field(description="Transaction ID to update")
    amount: Optional[float] = Field(None, description="New amount (positive for income, negative for expense)")
    category: Optional[str] = Field(None, description="New category ID or name")
    payee_name: Optional[str] = Field(None, description="New payee/merchant name")
    notes: Optional[str] = Field(None, description="New notes")
    date: Optional[IsoDate] = Field(None, description="New date in YYYY-MM-DD format")
    cleared: Optional[bool] = Field(None, description="Mark as cleared or not")


class MonthInput(ToolInput):
    month: Optional[IsoMonth] = Field(None, description="Month in YYYY-MM format (defaults to current month)")


class SetBudgetAmountInput(ToolInput):
    month: Optional[IsoMonth] = Field(None, description="Month in YYYY-MM format (defaults to current month)")
    category: str = Field(description="Category ID or name")
    amount: float = Field(description="Budget amount in currency")


class GetPayeesInput(ToolInput):
    search: Optional[str] = Field(None, description="Optional search term to filter payees")


class PeriodInput(ToolInput):
    start_date: Optional[IsoDate] = Field(None, description="Start date in YYYY-MM-DD format (defaults to start of current month)")
    end_date: Optional[IsoDate] = Field(None, description="End date in YYYY-MM-DD format (defaults to today)")


class CreateScheduleInput(ToolInput):
    name: Optional[str] = Field(None, description="Name/description of the schedule")
    account: str = Field(description="Account ID or name")
    payee: Optional[str] = Field(None, description="Payee/merchant name (created if it does not exist)")
    amount: float = Field(description="Amount (negative for expense, positive for income)")
    start_date: IsoDate = Field(description="Start date in YYYY-MM-DD format")
    frequency: Frequency = Field(description="How often this repeats")
    interval: Optional[int] = Field(None, ge=1, description="Interval between occurrences (default 1, e.g. 2 = every 2 weeks)")
    end_mode: Optional[EndMode] = Field(None, description="When to stop the schedule (default never)")
    end_occurrences: Optional[int] = Field(None, ge=1, description="Number of occurrences if end_mode is after_n_occurrences")
    end_date: Optional[IsoDate] = Field(None, description="End date if end_mode is on_date")
    posts_transaction: Optional[bool] = Field(None, description="Auto-post transactions when due (default false)")

    @model_validator(mode="after")
    def _end_condition(self) -> CreateScheduleInput:
        if self.end_mode == "after_n_occurrences" and self.end_occurrences is None:
            raise ValidationError("end_occurrences is required when end_mode is after_n_occurrences")
        if self.end_mode == "on_date" and self.end_date is None:
            raise ValidationError("end_date is required when end_mode is on_date")
        return self

    def recurrence(self) -> Recurrence:
        return Recurrence(
            frequency=self.frequency,
            interval=self.interval or 1,
            start=self.start_date,
            end_mode=self.end_mode or "never",
            end_occurrences=self.end_occurrences,
            end_date=self.end_date,
        )


class UpdateScheduleInput(ToolInput):
    id: str = Field(description="Schedule ID to update")
    name: Optional[str] = Field(None, description="New name")
    account: Optional[str] = Field(None, description="New account ID or name")
    payee: Optional[str] = Field(None, description="New payee name (created if it does not exist)")
    amount: Optional[float] = Field(None, description="New amount (negative for expense, positive for income)")
    posts_transaction: Optional[bool] = Field(None, description="Auto-post transactions when due")


# ---------------------------------------------------------------------------
# Tool outputs
# ---------------------------------------------------------------------------

class ActionOutput(BaseModel):
    success: bool
    message: str


class AccountOut(BaseModel):
    id: str
    name: str
    balance: float
    offbudget: bool
    closed: bool


class AccountsOutput(BaseModel):
    accounts: list[AccountOut]


class AccountBalanceOutput(BaseModel):
    account_name: str
    balance: float


class AddTransactionOutput(BaseModel):
    success: bool
    transaction_id: str
    message: str


class TransactionOut(BaseModel):
    id: str
    date: str
    amount: float
    payee: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    cleared: Optional[bool] = None


class TransactionsOutput(BaseModel):
    account_name: str
    transactions: list[TransactionOut]
    total_count: int


class SearchResultOut(BaseModel):
    id: str
    account: str
    date: str
    amount: float
    payee: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None


class SearchOutput(BaseModel):
    transactions: list[SearchResultOut]
    total_count: int


class CategoryOut(BaseModel):
    id: str
    name: str


class CategoryGroupOut(BaseModel):
    id: str
    name: str
    is_income: bool
    categories: list[CategoryOut]


class CategoriesOutput(BaseModel):
    category_groups: list[CategoryGroupOut]


class CategoryBudgetOut(BaseModel):
    name: str
    budgeted: float
    spent: float
    balance: float
    carryover: bool = False


class GroupBudgetOut(BaseModel):
    name: str
    budgeted: float
    spent: float
    balance: float
    categories: list[CategoryBudgetOut]


class BudgetMonthOutput(BaseModel):
    month: str
    to_budget: float
    total_budgeted: float
    total_spent: float
    category_groups: list[GroupBudgetOut]


class BudgetMonthsOutput(BaseModel):
    months: list[str]


class PayeeOut(BaseModel):
    id: str
    name: str


class PayeesOutput(BaseModel):
    payees: list[PayeeOut]
    total_count: int


class Period(BaseModel):
    start: str
    end: str


class CategorySpendOut(BaseModel):
    category: str
    amount: float
    percentage: int


class SpendingSummaryOutput(BaseModel):
    period: Period
    total_spent: float
    total_income: float
    net: float
    by_category: list[CategorySpendOut]


class ScheduleOut(BaseModel):
    id: str
    name: Optional[str] = None
    next_date: Optional[str] = None
    frequency: Optional[str] = None
    amount: Optional[float] = None
    payee: Optional[str] = None
    account: Optional[str] = None
    completed: Optional[bool] = None
    posts_transaction: Optional[bool] = None


class SchedulesOutput(BaseModel):
    schedules: list[ScheduleOut]
    total_count: int


class CreateScheduleOutput(BaseModel):
    success: bool
    schedule_id: str
    message: str
