"""Read-only snapshot of everything one report needs.

``RecordSetLoader.load`` is the only place that talks to the database. It
resolves every relationship the calculators need into plain lookup tables, so
the calculators work on frozen dataclasses and can never trigger a lazy load.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

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
from periods import Period, ensure_ordered

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryRecord:
    id: int
    name: str
    emoji: Optional[str]
    user_id: str


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: Optional[str]
    user_name: Optional[str]

    @property
    def display_name(self) -> Optional[str]:
        return self.email or self.user_name


@dataclass(frozen=True)
class ExpenseRecord:
    id: int
    user_id: str
    description: str
    amount_cents: int
    date: date
    category_id: Optional[int]
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class IncomeRecord:
    id: int
    user_id: str
    source: str
    amount_cents: int
    date: date
    description: Optional[str] = None
    category_id: Optional[int] = None


@dataclass(frozen=True)
class TransactionRecord:
    id: int
    type: TransactionType
    description: str
    amount_cents: int
    date: date
    category_id: Optional[int]
    notes: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class BudgetRecord:
    id: int
    name: str
    amount_cents: int
    start_date: date
    end_date: date
    category_id: int


@dataclass(frozen=True)
class GroupRecord:
    id: int
    name: str
    description: Optional[str]
    created_by_user_id: str
    created_at: datetime


@dataclass(frozen=True)
class MemberRecord:
    group_id: int
    user_id: str
    role: GroupMemberRole
    joined_at: datetime


@dataclass(frozen=True)
class SharedExpenseRecord:
    id: int
    group_id: int
    description: str
    amount_cents: int
    paid_by_user_id: str
    date: date
    created_at: datetime


@dataclass(frozen=True)
class ExpenseShareRecord:
    id: int
    expense_id: int
    shared_with_user_id: str
    amount_cents: int
    is_paid: bool
    created_at: datetime


@dataclass(frozen=True)
class RecordSet:
    user_id: str
    period: Period
    expenses: tuple[ExpenseRecord, ...] = ()
    incomes: tuple[IncomeRecord, ...] = ()
    transactions: tuple[TransactionRecord, ...] = ()
    budgets: tuple[BudgetRecord, ...] = ()
    memberships: tuple[MemberRecord, ...] = ()
    shared_expenses: tuple[SharedExpenseRecord, ...] = ()
    expense_shares: tuple[ExpenseShareRecord, ...] = ()
    categories: dict[int, CategoryRecord] = field(default_factory=dict)
    groups: dict[int, GroupRecord] = field(default_factory=dict)
    group_members: dict[int, tuple[MemberRecord, ...]] = field(default_factory=dict)
    share_expenses: dict[int, ExpenseRecord] = field(default_factory=dict)
    users: dict[str, UserRecord] = field(default_factory=dict)

    @property
    def start(self) -> date:
        return self.period.start

    @property
    def end(self) -> date:
        return self.period.end


def _expense_record(row: Expense) -> ExpenseRecord:
    return ExpenseRecord(
        id=row.id,
        user_id=row.user_id,
        description=row.description,
        amount_cents=row.amount_cents,
        date=row.date,
        category_id=row.category_id,
        notes=row.notes,
        created_at=row.created_at,
    )


class RecordSetLoader:
    def __init__(self, session: Session) -> None:
        self.session = session

    def load(self, user_id: str, start: date, end: date) -> RecordSet:
        ensure_ordered(start, end)

        expenses = tuple(
            _expense_record(row)
            for row in self.session.scalars(
                select(Expense)
                .where(Expense.user_id == user_id, Expense.date.between(start, end))
                .order_by(Expense.date, Expense.id)
            )
        )
        incomes = tuple(
            IncomeRecord(
                id=row.id,
                user_id=row.user_id,
                source=row.source,
                amount_cents=row.amount_cents,
                date=row.date,
                description=row.description,
                category_id=row.category_id,
            )
            for row in self.session.scalars(
                select(Income)
                .where(Income.user_id == user_id, Income.date.between(start, end))
                .order_by(Income.date, Income.id)
            )
        )
        transactions = tuple(
            TransactionRecord(
                id=row.id,
                type=row.type,
                description=row.description,
                amount_cents=row.amount_cents,
                date=row.date,
                category_id=row.category_id,
                notes=row.notes,
                created_at=row.created_at,
            )
            for row in self.session.scalars(
                select(Transaction)
                .where(
                    Transaction.user_id == user_id,
                    Transaction.date.between(start, end),
                )
                .order_by(
                    Transaction.date.desc(),
                    Transaction.created_at.desc(),
                    Transaction.id.desc(),
                )
            )
        )
        # Overlap, not containment: a budget that started before the range
        # still counts for the days it shares with it.
        budgets = tuple(
            BudgetRecord(
                id=row.id,
                name=row.name,
                amount_cents=row.amount_cents,
                start_date=row.start_date,
                end_date=row.end_date,
                category_id=row.category_id,
            )
            for row in self.session.scalars(
                select(Budget)
                .where(
                    Budget.user_id == user_id,
                    Budget.start_date <= end,
                    Budget.end_date >= start,
                )
                .order_by(Budget.start_date, Budget.id)
            )
        )

        memberships = tuple(
            self._member_record(row)
            for row in self.session.scalars(
                select(GroupMember)
                .where(GroupMember.user_id == user_id)
                .order_by(GroupMember.group_id)
            )
        )
        group_ids = [m.group_id for m in memberships]
        groups: dict[int, GroupRecord] = {}
        group_members: dict[int, tuple[MemberRecord, ...]] = {}
        shared_expenses: tuple[SharedExpenseRecord, ...] = ()
        if group_ids:
            for row in self.session.scalars(
                select(Group).where(Group.id.in_(group_ids))
            ):
                groups[row.id] = GroupRecord(
                    id=row.id,
                    name=row.name,
                    description=row.description,
                    created_by_user_id=row.created_by_user_id,
                    created_at=row.created_at,
                )
            members_by_group: dict[int, list[MemberRecord]] = {
                gid: [] for gid in group_ids
            }
            for row in self.session.scalars(
                select(GroupMember)
                .where(GroupMember.group_id.in_(group_ids))
                .order_by(GroupMember.group_id, GroupMember.user_id)
            ):
                members_by_group[row.group_id].append(self._member_record(row))
            group_members = {
                gid: tuple(rows) for gid, rows in members_by_group.items()
            }
            shared_expenses = tuple(
                SharedExpenseRecord(
                    id=row.id,
                    group_id=row.group_id,
                    description=row.description,
                    amount_cents=row.amount_cents,
                    paid_by_user_id=row.paid_by_user_id,
                    date=row.date,
                    created_at=row.created_at,
                )
                for row in self.session.scalars(
                    select(SharedExpense)
                    .where(
                        SharedExpense.group_id.in_(group_ids),
                        SharedExpense.date.between(start, end),
                    )
                    .order_by(SharedExpense.date, SharedExpense.id)
                )
            )

        share_rows = self.session.execute(
            select(ExpenseShare, Expense)
            .join(Expense, ExpenseShare.expense_id == Expense.id)
            .where(
                or_(
                    Expense.user_id == user_id,
                    ExpenseShare.shared_with_user_id == user_id,
                ),
                Expense.date.between(start, end),
            )
            .order_by(ExpenseShare.id)
        ).all()
        expense_shares = tuple(
            ExpenseShareRecord(
                id=share.id,
                expense_id=share.expense_id,
                shared_with_user_id=share.shared_with_user_id,
                amount_cents=share.amount_cents,
                is_paid=share.is_paid,
                created_at=share.created_at,
            )
            for share, _expense in share_rows
        )
        share_expenses = {
            expense.id: _expense_record(expense) for _share, expense in share_rows
        }

        category_ids = {
            cid
            for cid in (
                *(e.category_id for e in expenses),
                *(e.category_id for e in share_expenses.values()),
                *(t.category_id for t in transactions),
                *(b.category_id for b in budgets),
            )
            if cid is not None
        }
        categories = self._categories(category_ids)

        user_ids = {user_id}
        user_ids.update(s.paid_by_user_id for s in shared_expenses)
        user_ids.update(e.user_id for e in share_expenses.values())
        user_ids.update(g.created_by_user_id for g in groups.values())
        users = self._users(user_ids)

        record_set = RecordSet(
            user_id=user_id,
            period=Period("report", start, end),
            expenses=expenses,
            incomes=incomes,
            transactions=transactions,
            budgets=budgets,
            memberships=memberships,
            shared_expenses=shared_expenses,
            expense_shares=expense_shares,
            categories=categories,
            groups=groups,
            group_members=group_members,
            share_expenses=share_expenses,
            users=users,
        )
        logger.info(
            f"record_set_loaded: user={user_id} period={start}to{end} "
            f"expenses={len(expenses)} incomes={len(incomes)} "
            f"budgets={len(budgets)} groups={len(groups)} "
            f"shared_expenses={len(shared_expenses)} "
            f"expense_shares={len(expense_shares)}"
        )
        return record_set

    @staticmethod
    def _member_record(row: GroupMember) -> MemberRecord:
        return MemberRecord(
            group_id=row.group_id,
            user_id=row.user_id,
            role=row.role,
            joined_at=row.joined_at,
        )

    def _categories(self, category_ids: Iterable[int]) -> dict[int, CategoryRecord]:
        ids = sorted(category_ids)
        if not ids:
            return {}
        return {
            row.id: CategoryRecord(
                id=row.id, name=row.name, emoji=row.emoji, user_id=row.user_id
            )
            for row in self.session.scalars(
                select(Category).where(Category.id.in_(ids))
            )
        }

    def _users(self, user_ids: Iterable[str]) -> dict[str, UserRecord]:
        ids = sorted(user_ids)
        return {
            row.id: UserRecord(id=row.id, email=row.email, user_name=row.user_name)
            for row in self.session.scalars(select(User).where(User.id.in_(ids)))
        }
