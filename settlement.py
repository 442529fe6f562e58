"""Net settlement positions for shared spending.

A group shared expense is paid in full by one member and split equally across
every current member of the group. Splits are done in integer cents: an uneven
remainder is handed out one cent at a time to members in ascending user-id
order, so the member shares always add up to the expense total and the net
contributions of all members of one expense sum to exactly zero.

An individual expense share is a bilateral split of a personal expense: the
owner is owed the share amount and the other party owes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from models import GroupMemberRole
from records import (
    ExpenseShareRecord,
    MemberRecord,
    RecordSet,
    SharedExpenseRecord,
)
from reporting import cents_to_amount
from schemas import GroupSummaryOut, SharedExpenseOut

UNKNOWN_GROUP = "Unknown Group"
INDIVIDUAL_SHARE = "Individual Share"

ROLE_NAMES = {
    GroupMemberRole.admin: "Admin",
    GroupMemberRole.member: "Member",
    GroupMemberRole.child: "Child",
}


def split_equally(total_cents: int, user_ids: Sequence[str]) -> dict[str, int]:
    ordered = sorted(set(user_ids))
    if not ordered:
        return {}
    base, remainder = divmod(total_cents, len(ordered))
    return {
        user_id: base + (1 if index < remainder else 0)
        for index, user_id in enumerate(ordered)
    }


def member_share_cents(
    expense: SharedExpenseRecord, members: Sequence[MemberRecord], user_id: str
) -> int:
    if not members:
        return 0
    shares = split_equally(expense.amount_cents, [m.user_id for m in members])
    return shares.get(user_id, expense.amount_cents // len(shares))


def member_net_contribution(
    expense: SharedExpenseRecord, members: Sequence[MemberRecord], user_id: str
) -> int:
    share = member_share_cents(expense, members, user_id)
    if expense.paid_by_user_id == user_id:
        return expense.amount_cents - share
    return -share


def expense_share_net_contribution(
    share: ExpenseShareRecord, expense_owner_id: str, user_id: str
) -> int:
    if expense_owner_id == user_id:
        return share.amount_cents
    if share.shared_with_user_id == user_id:
        return -share.amount_cents
    return 0


@dataclass(frozen=True)
class Settlement:
    items: tuple[SharedExpenseOut, ...]
    total_balance_cents: int


def settle(record_set: RecordSet) -> Settlement:
    user_id = record_set.user_id
    items: list[SharedExpenseOut] = []
    total = 0

    for expense in record_set.shared_expenses:
        members = record_set.group_members.get(expense.group_id, ())
        share = member_share_cents(expense, members, user_id)
        net = member_net_contribution(expense, members, user_id)
        total += net
        group = record_set.groups.get(expense.group_id)
        payer = record_set.users.get(expense.paid_by_user_id)
        items.append(
            SharedExpenseOut(
                id=expense.id,
                share_type="Group",
                group_id=expense.group_id,
                group_name=group.name if group else UNKNOWN_GROUP,
                description=expense.description,
                total_amount=cents_to_amount(expense.amount_cents),
                user_share_amount=cents_to_amount(share),
                net_amount=cents_to_amount(net),
                paid_by_user_id=expense.paid_by_user_id,
                paid_by_user_name=payer.display_name if payer else None,
                is_paid_by_user=expense.paid_by_user_id == user_id,
                date=expense.date,
                created_at=expense.created_at,
            )
        )

    for share in record_set.expense_shares:
        expense = record_set.share_expenses.get(share.expense_id)
        if expense is None:
            continue
        net = expense_share_net_contribution(share, expense.user_id, user_id)
        total += net
        owner = record_set.users.get(expense.user_id)
        items.append(
            SharedExpenseOut(
                id=share.id,
                share_type="Individual",
                group_id=None,
                group_name=INDIVIDUAL_SHARE,
                description=expense.description,
                total_amount=cents_to_amount(expense.amount_cents),
                user_share_amount=cents_to_amount(share.amount_cents),
                net_amount=cents_to_amount(net),
                paid_by_user_id=expense.user_id,
                paid_by_user_name=owner.display_name if owner else None,
                is_paid_by_user=expense.user_id == user_id,
                date=expense.date,
                created_at=share.created_at,
            )
        )

    items.sort(
        key=lambda item: (item.date, item.created_at, item.share_type, item.id),
        reverse=True,
    )
    return Settlement(items=tuple(items), total_balance_cents=total)


def group_summaries(record_set: RecordSet) -> list[GroupSummaryOut]:
    user_id = record_set.user_id
    summaries: list[GroupSummaryOut] = []
    for membership in record_set.memberships:
        group = record_set.groups.get(membership.group_id)
        if group is None:
            continue
        members = record_set.group_members.get(group.id, ())
        expenses = [
            e for e in record_set.shared_expenses if e.group_id == group.id
        ]
        owed = sum(member_net_contribution(e, members, user_id) for e in expenses)
        creator = record_set.users.get(group.created_by_user_id)
        summaries.append(
            GroupSummaryOut(
                id=group.id,
                name=group.name,
                description=group.description,
                created_by_user_id=group.created_by_user_id,
                created_by_user_name=creator.display_name if creator else None,
                user_role=ROLE_NAMES.get(membership.role, "Member"),
                member_count=len(members),
                total_expenses=len(expenses),
                total_expense_amount=cents_to_amount(
                    sum(e.amount_cents for e in expenses)
                ),
                user_total_owed=cents_to_amount(owed),
                created_at=group.created_at,
                joined_at=membership.joined_at,
            )
        )
    summaries.sort(key=lambda g: (g.joined_at, g.id), reverse=True)
    return summaries
