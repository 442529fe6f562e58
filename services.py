from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from config import get_settings
from models import TransactionType
from periods import Period
from records import RecordSet, RecordSetLoader
from reporting import (
    average_amount,
    budget_comparison,
    category_breakdown,
    cents_to_amount,
    monthly_summaries,
    percentage,
)
from schemas import ReportOut, TransactionOut
from settlement import group_summaries, settle

logger = logging.getLogger(__name__)


def report_transactions(record_set: RecordSet) -> list[TransactionOut]:
    rows: list[TransactionOut] = []
    for txn in record_set.transactions:
        category = (
            record_set.categories.get(txn.category_id)
            if txn.category_id is not None
            else None
        )
        is_income = txn.type == TransactionType.income
        rows.append(
            TransactionOut(
                id=txn.id,
                type="Income" if is_income else "Expense",
                description=txn.description,
                amount=cents_to_amount(
                    txn.amount_cents if is_income else -txn.amount_cents
                ),
                date=txn.date,
                category_id=txn.category_id,
                category_name=category.name if category else None,
                category_emoji=category.emoji if category else None,
                notes=txn.notes,
                created_at=txn.created_at,
            )
        )
    return rows


def assemble_report(
    record_set: RecordSet,
    *,
    generated_at: datetime,
    include_uncategorized: bool = False,
) -> ReportOut:
    expenses = record_set.expenses
    incomes = record_set.incomes
    days = record_set.period.days

    total_income = sum(i.amount_cents for i in incomes)
    total_expenses = sum(e.amount_cents for e in expenses)
    net = total_income - total_expenses

    settlement = settle(record_set)

    return ReportOut(
        start_date=record_set.start,
        end_date=record_set.end,
        total_income=cents_to_amount(total_income),
        total_expenses=cents_to_amount(total_expenses),
        net_amount=cents_to_amount(net),
        savings_rate=percentage(net, total_income),
        total_income_transactions=len(incomes),
        total_expense_transactions=len(expenses),
        average_daily_income=average_amount(total_income, days),
        average_daily_expense=average_amount(total_expenses, days),
        largest_expense=cents_to_amount(
            max((e.amount_cents for e in expenses), default=0)
        ),
        largest_income=cents_to_amount(
            max((i.amount_cents for i in incomes), default=0)
        ),
        category_expenses=tuple(
            category_breakdown(
                expenses,
                record_set.categories,
                total_expenses,
                include_uncategorized=include_uncategorized,
            )
        ),
        monthly_summaries=tuple(
            monthly_summaries(expenses, incomes, record_set.start, record_set.end)
        ),
        budget_comparison=budget_comparison(
            record_set.budgets,
            expenses,
            record_set.categories,
            record_set.start,
            record_set.end,
        ),
        transactions=tuple(report_transactions(record_set)),
        shared_expenses=settlement.items,
        total_shared_expenses=cents_to_amount(settlement.total_balance_cents),
        groups=tuple(group_summaries(record_set)),
        generated_at=generated_at,
    )


class ReportService:
    def __init__(self, session: Session, user_id: str) -> None:
        self.session = session
        self.user_id = user_id
        self.loader = RecordSetLoader(session)

    def build_report(
        self,
        start: date,
        end: date,
        *,
        generated_at: Optional[datetime] = None,
    ) -> ReportOut:
        record_set = self.loader.load(self.user_id, start, end)
        report = assemble_report(
            record_set,
            generated_at=generated_at or datetime.now(timezone.utc),
            include_uncategorized=get_settings().uncategorized_bucket,
        )
        logger.info(
            f"report_generated: user={self.user_id} period={start}to{end} "
            f"expenses={report.total_expense_transactions} "
            f"incomes={report.total_income_transactions} "
            f"shared_items={len(report.shared_expenses)}"
        )
        return report

    def build_report_for_period(
        self, period: Period, *, generated_at: Optional[datetime] = None
    ) -> ReportOut:
        return self.build_report(
            period.start, period.end, generated_at=generated_at
        )
