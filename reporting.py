from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional, Sequence

from periods import month_windows
from records import BudgetRecord, CategoryRecord, ExpenseRecord, IncomeRecord
from schemas import (
    BudgetComparisonOut,
    CategoryBudgetOut,
    CategoryExpenseOut,
    MonthlySummaryOut,
)

CENT = Decimal("0.01")
UNKNOWN_CATEGORY = "Unknown"
UNCATEGORIZED = "Uncategorized"


def cents_to_amount(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def average_amount(total_cents: int, count: int) -> Decimal:
    if count <= 0:
        return Decimal(0).quantize(CENT)
    return (Decimal(total_cents) / count / 100).quantize(CENT, rounding=ROUND_HALF_UP)


def percentage(part_cents: int, whole_cents: int) -> Decimal:
    if whole_cents == 0:
        return Decimal(0).quantize(CENT)
    return (Decimal(part_cents) * 100 / Decimal(whole_cents)).quantize(
        CENT, rounding=ROUND_HALF_UP
    )


@dataclass
class _CategoryTotals:
    total_cents: int = 0
    count: int = 0


def category_breakdown(
    expenses: Sequence[ExpenseRecord],
    categories: Mapping[int, CategoryRecord],
    grand_total_cents: int,
    *,
    include_uncategorized: bool = False,
) -> list[CategoryExpenseOut]:
    """Spending per category id, largest first.

    Uncategorized expenses are left out unless ``include_uncategorized`` is set,
    in which case they are reported under a ``None`` category id.
    """
    totals: dict[Optional[int], _CategoryTotals] = {}
    for expense in expenses:
        if expense.category_id is None and not include_uncategorized:
            continue
        bucket = totals.setdefault(expense.category_id, _CategoryTotals())
        bucket.total_cents += expense.amount_cents
        bucket.count += 1

    ordered = sorted(
        totals.items(),
        key=lambda item: (-item[1].total_cents, item[0] is None, item[0] or 0),
    )
    rows: list[CategoryExpenseOut] = []
    for category_id, bucket in ordered:
        category = categories.get(category_id) if category_id is not None else None
        if category_id is None:
            name = UNCATEGORIZED
        else:
            name = category.name if category else UNKNOWN_CATEGORY
        rows.append(
            CategoryExpenseOut(
                category_id=category_id,
                category_name=name,
                category_emoji=category.emoji if category else None,
                total_amount=cents_to_amount(bucket.total_cents),
                expense_count=bucket.count,
                percentage_of_total=percentage(bucket.total_cents, grand_total_cents),
                average_amount=average_amount(bucket.total_cents, bucket.count),
            )
        )
    return rows


def monthly_summaries(
    expenses: Sequence[ExpenseRecord],
    incomes: Sequence[IncomeRecord],
    start: date,
    end: date,
) -> list[MonthlySummaryOut]:
    summaries: list[MonthlySummaryOut] = []
    for month_first, window_start, window_end in month_windows(start, end):
        income_cents = sum(
            i.amount_cents for i in incomes if window_start <= i.date <= window_end
        )
        expense_cents = sum(
            e.amount_cents for e in expenses if window_start <= e.date <= window_end
        )
        summaries.append(
            MonthlySummaryOut(
                year=month_first.year,
                month=month_first.month,
                month_name=calendar.month_name[month_first.month],
                total_income=cents_to_amount(income_cents),
                total_expenses=cents_to_amount(expense_cents),
                net_amount=cents_to_amount(income_cents - expense_cents),
            )
        )
    return summaries


def budget_spent_cents(
    budget: BudgetRecord,
    expenses: Sequence[ExpenseRecord],
    start: date,
    end: date,
) -> int:
    """Spending in the budget's category over the part of the budget window
    that lies inside ``[start, end]``."""
    overlap_start = max(budget.start_date, start)
    overlap_end = min(budget.end_date, end)
    if overlap_start > overlap_end:
        return 0
    return sum(
        e.amount_cents
        for e in expenses
        if e.category_id == budget.category_id
        and overlap_start <= e.date <= overlap_end
    )


def budget_comparison(
    budgets: Sequence[BudgetRecord],
    expenses: Sequence[ExpenseRecord],
    categories: Mapping[int, CategoryRecord],
    start: date,
    end: date,
) -> Optional[BudgetComparisonOut]:
    active = [b for b in budgets if b.start_date <= end and b.end_date >= start]
    if not active:
        return None

    rows: list[tuple[int, int, CategoryBudgetOut]] = []
    total_budgeted = 0
    total_spent = 0
    for budget in active:
        spent = budget_spent_cents(budget, expenses, start, end)
        total_budgeted += budget.amount_cents
        total_spent += spent
        category = categories.get(budget.category_id)
        rows.append(
            (
                spent,
                budget.id,
                CategoryBudgetOut(
                    budget_id=budget.id,
                    budget_name=budget.name,
                    category_id=budget.category_id,
                    category_name=category.name if category else UNKNOWN_CATEGORY,
                    category_emoji=category.emoji if category else None,
                    start_date=budget.start_date,
                    end_date=budget.end_date,
                    budgeted_amount=cents_to_amount(budget.amount_cents),
                    spent_amount=cents_to_amount(spent),
                    remaining_amount=cents_to_amount(budget.amount_cents - spent),
                    utilization_percentage=percentage(spent, budget.amount_cents),
                    is_over_budget=spent > budget.amount_cents,
                ),
            )
        )
    rows.sort(key=lambda row: (-row[0], row[1]))

    return BudgetComparisonOut(
        total_budgeted=cents_to_amount(total_budgeted),
        total_spent=cents_to_amount(total_spent),
        budget_utilization=percentage(total_spent, total_budgeted),
        remaining_budget=cents_to_amount(total_budgeted - total_spent),
        category_budgets=tuple(row for _, _, row in rows),
    )
