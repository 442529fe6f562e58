import datetime as dt
from decimal import Decimal
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# JSON numbers, not decimal strings.
Amount = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]


class ReportModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CategoryExpenseOut(ReportModel):
    category_id: Optional[int]
    category_name: str
    category_emoji: Optional[str] = None
    total_amount: Amount
    expense_count: int
    percentage_of_total: Amount
    average_amount: Amount


class MonthlySummaryOut(ReportModel):
    year: int
    month: int
    month_name: str
    total_income: Amount
    total_expenses: Amount
    net_amount: Amount


class CategoryBudgetOut(ReportModel):
    budget_id: int
    budget_name: str
    category_id: int
    category_name: str
    category_emoji: Optional[str] = None
    start_date: dt.date
    end_date: dt.date
    budgeted_amount: Amount
    spent_amount: Amount
    remaining_amount: Amount
    utilization_percentage: Amount
    is_over_budget: bool


class BudgetComparisonOut(ReportModel):
    total_budgeted: Amount
    total_spent: Amount
    budget_utilization: Amount
    remaining_budget: Amount
    category_budgets: tuple[CategoryBudgetOut, ...]


class TransactionOut(ReportModel):
    id: int
    type: Literal["Income", "Expense"]
    description: str
    amount: Amount
    date: dt.date
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    category_emoji: Optional[str] = None
    notes: Optional[str] = None
    created_at: dt.datetime


class SharedExpenseOut(ReportModel):
    id: int
    share_type: Literal["Group", "Individual"]
    group_id: Optional[int]
    group_name: str
    description: str
    total_amount: Amount
    user_share_amount: Amount
    net_amount: Amount
    paid_by_user_id: str
    paid_by_user_name: Optional[str] = None
    is_paid_by_user: bool
    date: dt.date
    created_at: dt.datetime


class GroupSummaryOut(ReportModel):
    id: int
    name: str
    description: Optional[str] = None
    created_by_user_id: str
    created_by_user_name: Optional[str] = None
    user_role: Literal["Admin", "Member", "Child"]
    member_count: int
    total_expenses: int
    total_expense_amount: Amount
    user_total_owed: Amount
    created_at: dt.datetime
    joined_at: dt.datetime


class ReportOut(ReportModel):
    start_date: dt.date
    end_date: dt.date
    total_income: Amount
    total_expenses: Amount
    net_amount: Amount
    savings_rate: Amount
    total_income_transactions: int
    total_expense_transactions: int
    average_daily_income: Amount
    average_daily_expense: Amount
    largest_expense: Amount
    largest_income: Amount
    category_expenses: tuple[CategoryExpenseOut, ...]
    monthly_summaries: tuple[MonthlySummaryOut, ...]
    budget_comparison: Optional[BudgetComparisonOut] = None
    transactions: tuple[TransactionOut, ...]
    shared_expenses: tuple[SharedExpenseOut, ...]
    total_shared_expenses: Amount
    groups: tuple[GroupSummaryOut, ...]
    generated_at: dt.datetime
