from datetime import date
from decimal import Decimal

from records import BudgetRecord, CategoryRecord, ExpenseRecord
from reporting import budget_comparison, budget_spent_cents

FOOD = 1
TRAVEL = 2
CATEGORIES = {
    FOOD: CategoryRecord(id=FOOD, name="Food", emoji="🍕", user_id="u1"),
    TRAVEL: CategoryRecord(id=TRAVEL, name="Travel", emoji=None, user_id="u1"),
}


def expense(expense_id: int, amount_cents: int, on: date, category_id: int = FOOD):
    return ExpenseRecord(
        id=expense_id,
        user_id="u1",
        description="Expense",
        amount_cents=amount_cents,
        date=on,
        category_id=category_id,
    )


def budget(
    budget_id: int,
    amount_cents: int,
    start: date,
    end: date,
    category_id: int = FOOD,
) -> BudgetRecord:
    return BudgetRecord(
        id=budget_id,
        name=f"Budget {budget_id}",
        amount_cents=amount_cents,
        start_date=start,
        end_date=end,
        category_id=category_id,
    )


def test_spent_is_clipped_to_budget_and_range_overlap() -> None:
    january = budget(1, 100_000, date(2025, 1, 1), date(2025, 1, 31))
    expenses = [
        expense(1, 20_000, date(2025, 1, 10)),
        expense(2, 30_000, date(2025, 1, 20)),
        expense(3, 40_000, date(2025, 2, 5)),
    ]

    spent = budget_spent_cents(january, expenses, date(2025, 1, 15), date(2025, 2, 15))
    result = budget_comparison(
        [january], expenses, CATEGORIES, date(2025, 1, 15), date(2025, 2, 15)
    )

    assert spent == 30_000
    assert result is not None
    row = result.category_budgets[0]
    assert row.spent_amount == Decimal("300.00")
    assert row.remaining_amount == Decimal("700.00")
    assert row.utilization_percentage == Decimal("30.00")
    assert row.is_over_budget is False


def test_only_matching_category_counts() -> None:
    food = budget(1, 10_000, date(2025, 3, 1), date(2025, 3, 31))
    expenses = [
        expense(1, 2_500, date(2025, 3, 3)),
        expense(2, 9_000, date(2025, 3, 4), category_id=TRAVEL),
    ]

    result = budget_comparison(
        [food], expenses, CATEGORIES, date(2025, 3, 1), date(2025, 3, 31)
    )

    assert result is not None
    assert result.total_spent == Decimal("25.00")


def test_zero_amount_budget_has_zero_utilization() -> None:
    empty = budget(1, 0, date(2025, 3, 1), date(2025, 3, 31))
    expenses = [expense(1, 1_500, date(2025, 3, 3))]

    result = budget_comparison(
        [empty], expenses, CATEGORIES, date(2025, 3, 1), date(2025, 3, 31)
    )

    assert result is not None
    row = result.category_budgets[0]
    assert row.utilization_percentage == Decimal("0")
    assert row.is_over_budget is True
    assert row.remaining_amount == Decimal("-15.00")
    assert result.budget_utilization == Decimal("0")


def test_no_overlapping_budget_returns_none() -> None:
    old = budget(1, 10_000, date(2024, 1, 1), date(2024, 12, 31))

    assert (
        budget_comparison([old], [], CATEGORIES, date(2025, 1, 1), date(2025, 1, 31))
        is None
    )
    assert budget_comparison([], [], CATEGORIES, date(2025, 1, 1), date(2025, 1, 31)) is None


def test_unspent_budgets_are_reported_not_omitted() -> None:
    food = budget(1, 10_000, date(2025, 1, 1), date(2025, 1, 31))

    result = budget_comparison(
        [food], [], CATEGORIES, date(2025, 1, 1), date(2025, 1, 31)
    )

    assert result is not None
    assert result.total_spent == Decimal("0")
    assert result.remaining_budget == Decimal("100.00")


def test_aggregates_and_ordering_by_spent() -> None:
    food = budget(1, 10_000, date(2025, 4, 1), date(2025, 4, 30))
    travel = budget(2, 20_000, date(2025, 4, 1), date(2025, 4, 30), TRAVEL)
    expenses = [
        expense(1, 12_000, date(2025, 4, 2)),
        expense(2, 5_000, date(2025, 4, 3), category_id=TRAVEL),
    ]

    result = budget_comparison(
        [travel, food], expenses, CATEGORIES, date(2025, 4, 1), date(2025, 4, 30)
    )

    assert result is not None
    assert [row.budget_id for row in result.category_budgets] == [1, 2]
    food_row = result.category_budgets[0]
    assert food_row.category_name == "Food"
    assert food_row.category_emoji == "🍕"
    assert food_row.is_over_budget is True
    assert food_row.utilization_percentage == Decimal("120.00")
    assert result.total_budgeted == Decimal("300.00")
    assert result.total_spent == Decimal("170.00")
    assert result.remaining_budget == Decimal("130.00")
    assert result.budget_utilization == Decimal("56.67")
