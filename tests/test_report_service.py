from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import Base
from models import (
    Budget,
    Category,
    Expense,
    ExpenseShare,
    Group,
    GroupMember,
    GroupMemberRole,
    Income,
    SharedExpense,
    Transaction,
    TransactionType,
    User,
)
from periods import InvalidRange
from records import RecordSetLoader
from services import ReportService

GENERATED_AT = datetime(2025, 2, 16, 8, 0, tzinfo=timezone.utc)


def make_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return SessionLocal()


def seed(session) -> dict[str, int]:
    session.add_all(
        [
            User(id="u1", email="u1@example.com"),
            User(id="u2", email="u2@example.com"),
            User(id="u3", user_name="third"),
        ]
    )
    food = Category(user_id="u1", name="Food", emoji="🍔")
    transport = Category(user_id="u1", name="Transport")
    other_food = Category(user_id="u2", name="Food")
    session.add_all([food, transport, other_food])
    session.flush()

    session.add_all(
        [
            Expense(
                user_id="u1",
                description="Groceries",
                amount_cents=10_000,
                date=date(2025, 1, 20),
                category_id=food.id,
            ),
            Expense(
                user_id="u1",
                description="Train",
                amount_cents=5_000,
                date=date(2025, 2, 3),
                category_id=transport.id,
            ),
            # outside the report range
            Expense(
                user_id="u1",
                description="Old dinner",
                amount_cents=7_000,
                date=date(2025, 1, 10),
                category_id=food.id,
            ),
            # someone else's spending
            Expense(
                user_id="u2",
                description="Their lunch",
                amount_cents=1_200,
                date=date(2025, 1, 25),
                category_id=other_food.id,
            ),
            Income(
                user_id="u1",
                source="Salary",
                amount_cents=300_000,
                date=date(2025, 1, 31),
            ),
            Income(
                user_id="u1",
                source="Refund",
                amount_cents=2_500,
                date=date(2025, 2, 10),
            ),
            Budget(
                user_id="u1",
                name="January food",
                amount_cents=20_000,
                start_date=date(2025, 1, 1),
                end_date=date(2025, 1, 31),
                category_id=food.id,
            ),
            Budget(
                user_id="u1",
                name="Last year",
                amount_cents=20_000,
                start_date=date(2024, 1, 1),
                end_date=date(2024, 12, 31),
                category_id=food.id,
            ),
            Transaction(
                user_id="u1",
                type=TransactionType.expense,
                description="Groceries",
                amount_cents=10_000,
                date=date(2025, 1, 20),
                category_id=food.id,
                created_at=datetime(2025, 1, 20, 10, 0),
            ),
            Transaction(
                user_id="u1",
                type=TransactionType.income,
                description="Salary",
                amount_cents=300_000,
                date=date(2025, 1, 31),
                created_at=datetime(2025, 1, 31, 9, 0),
            ),
        ]
    )

    flat = Group(name="Flat", created_by_user_id="u1")
    session.add(flat)
    session.flush()
    session.add_all(
        [
            GroupMember(
                group_id=flat.id,
                user_id="u1",
                role=GroupMemberRole.admin,
                joined_at=datetime(2024, 12, 1),
            ),
            GroupMember(
                group_id=flat.id, user_id="u2", joined_at=datetime(2024, 12, 2)
            ),
            GroupMember(
                group_id=flat.id,
                user_id="u3",
                role=GroupMemberRole.child,
                joined_at=datetime(2024, 12, 3),
            ),
            SharedExpense(
                group_id=flat.id,
                description="Cleaning supplies",
                amount_cents=9_000,
                paid_by_user_id="u1",
                date=date(2025, 1, 18),
                created_at=datetime(2025, 1, 18, 8, 0),
            ),
            SharedExpense(
                group_id=flat.id,
                description="Internet",
                amount_cents=6_000,
                paid_by_user_id="u2",
                date=date(2025, 2, 1),
                created_at=datetime(2025, 2, 1, 8, 0),
            ),
        ]
    )

    theirs = Expense(
        user_id="u2",
        description="Concert",
        amount_cents=8_000,
        date=date(2025, 2, 5),
        category_id=other_food.id,
    )
    session.add(theirs)
    session.flush()
    session.add(
        ExpenseShare(
            expense_id=theirs.id,
            shared_with_user_id="u1",
            amount_cents=4_000,
            created_at=datetime(2025, 2, 5, 20, 0),
        )
    )
    session.commit()
    return {"food": food.id, "transport": transport.id, "flat": flat.id}


def test_full_report_combines_every_section() -> None:
    session = make_session()
    ids = seed(session)

    report = ReportService(session, "u1").build_report(
        date(2025, 1, 15), date(2025, 2, 15), generated_at=GENERATED_AT
    )

    assert report.total_expenses == Decimal("150.00")
    assert report.total_income == Decimal("3025.00")
    assert report.net_amount == Decimal("2875.00")
    assert report.savings_rate == Decimal("95.04")
    assert report.total_expense_transactions == 2
    assert report.total_income_transactions == 2
    assert report.average_daily_expense == Decimal("4.69")
    assert report.average_daily_income == Decimal("94.53")
    assert report.largest_expense == Decimal("100.00")
    assert report.largest_income == Decimal("3000.00")

    food, transport = report.category_expenses
    assert food.category_id == ids["food"]
    assert food.percentage_of_total == Decimal("66.67")
    assert food.average_amount == Decimal("100.00")
    assert transport.percentage_of_total == Decimal("33.33")

    assert [(m.month, m.total_expenses) for m in report.monthly_summaries] == [
        (1, Decimal("100.00")),
        (2, Decimal("50.00")),
    ]

    assert report.budget_comparison is not None
    assert len(report.budget_comparison.category_budgets) == 1
    january = report.budget_comparison.category_budgets[0]
    assert january.spent_amount == Decimal("100.00")
    assert january.utilization_percentage == Decimal("50.00")

    assert [t.amount for t in report.transactions] == [
        Decimal("3000.00"),
        Decimal("-100.00"),
    ]
    assert report.transactions[1].category_name == "Food"

    # +60 (paid 90 for three) -20 (internet) -40 (concert share)
    assert report.total_shared_expenses == Decimal("0.00")
    assert [item.description for item in report.shared_expenses] == [
        "Concert",
        "Internet",
        "Cleaning supplies",
    ]
    cleaning = report.shared_expenses[-1]
    assert cleaning.user_share_amount == Decimal("30.00")
    assert cleaning.net_amount == Decimal("60.00")
    assert cleaning.paid_by_user_name == "u1@example.com"

    (flat,) = report.groups
    assert flat.id == ids["flat"]
    assert flat.user_role == "Admin"
    assert flat.member_count == 3
    assert flat.total_expenses == 2
    assert flat.user_total_owed == Decimal("40.00")
    assert report.generated_at == GENERATED_AT


def test_report_is_idempotent() -> None:
    session = make_session()
    seed(session)
    service = ReportService(session, "u1")

    first = service.build_report(
        date(2025, 1, 1), date(2025, 3, 31), generated_at=GENERATED_AT
    )
    second = service.build_report(
        date(2025, 1, 1), date(2025, 3, 31), generated_at=GENERATED_AT
    )

    assert first == second
    assert first.model_dump_json(by_alias=True) == second.model_dump_json(
        by_alias=True
    )


def test_monthly_partition_matches_totals() -> None:
    session = make_session()
    seed(session)

    report = ReportService(session, "u1").build_report(
        date(2024, 12, 20), date(2025, 3, 2), generated_at=GENERATED_AT
    )

    assert len(report.monthly_summaries) == 4
    assert (
        sum(m.total_expenses for m in report.monthly_summaries) == report.total_expenses
    )
    assert sum(m.total_income for m in report.monthly_summaries) == report.total_income


def test_empty_report_uses_zero_defaults() -> None:
    session = make_session()

    report = ReportService(session, "nobody").build_report(
        date(2025, 1, 1), date(2025, 1, 31), generated_at=GENERATED_AT
    )

    assert report.total_income == Decimal("0")
    assert report.savings_rate == Decimal("0")
    assert report.largest_expense == Decimal("0")
    assert report.largest_income == Decimal("0")
    assert report.category_expenses == ()
    assert report.budget_comparison is None
    assert report.shared_expenses == ()
    assert report.groups == ()
    assert len(report.monthly_summaries) == 1


def test_reversed_range_raises_before_loading() -> None:
    session = make_session()

    with pytest.raises(InvalidRange):
        ReportService(session, "u1").build_report(date(2025, 2, 1), date(2025, 1, 1))


def test_loader_scopes_records_to_user_and_range() -> None:
    session = make_session()
    seed(session)

    record_set = RecordSetLoader(session).load(
        "u1", date(2025, 1, 15), date(2025, 2, 15)
    )

    assert {e.description for e in record_set.expenses} == {"Groceries", "Train"}
    assert [b.name for b in record_set.budgets] == ["January food"]
    assert len(record_set.shared_expenses) == 2
    assert len(record_set.expense_shares) == 1
    share = record_set.expense_shares[0]
    assert record_set.share_expenses[share.expense_id].user_id == "u2"
    assert {m.user_id for m in next(iter(record_set.group_members.values()))} == {
        "u1",
        "u2",
        "u3",
    }
    assert set(record_set.users) == {"u1", "u2"}


def test_loader_includes_budget_started_before_range() -> None:
    session = make_session()
    seed(session)

    record_set = RecordSetLoader(session).load(
        "u1", date(2025, 1, 31), date(2025, 1, 31)
    )

    assert [b.name for b in record_set.budgets] == ["January food"]


def test_second_user_sees_the_mirrored_position() -> None:
    session = make_session()
    seed(session)

    report = ReportService(session, "u2").build_report(
        date(2025, 1, 15), date(2025, 2, 15), generated_at=GENERATED_AT
    )

    # -30 (cleaning) +40 (internet) +40 (concert share)
    assert report.total_shared_expenses == Decimal("50.00")
    (flat,) = report.groups
    assert flat.user_role == "Member"
    assert flat.user_total_owed == Decimal("10.00")
