from typing import Dict, Iterable, List, Optional

from coworking.schemas.booking import utcnow
from coworking.schemas.expense import Expense, RecurringExpense
from coworking.utils.dates import clamp_day


def generated_expense_id(rule_id: str, year: int, month: int) -> str:
    return f"recurring-{rule_id}-{year:04d}-{month:02d}"


def expand_recurring_expenses(
    rules: Iterable[RecurringExpense],
    year: int,
    month: int,
    existing: Optional[Dict[str, Expense]] = None,
) -> List[Expense]:
    """
    One expense per active rule for the given month.

    Ids depend only on (rule, year, month) so regenerating a period
    overwrites the same records. Records that already exist keep their
    created_at, the rest of the fields come from the rule as it is now.
    """
    existing = existing or {}
    now = utcnow()
    expenses = []
    for rule in rules:
        if not rule.is_active:
            continue
        expense_id = generated_expense_id(rule.id, year, month)
        previous = existing.get(expense_id)
        expenses.append(Expense(
            id=expense_id,
            date=clamp_day(year, month, rule.day_of_month),
            amount=rule.amount,
            currency=rule.currency,
            category=rule.category,
            description=rule.description,
            is_recurring=True,
            recurring_expense_id=rule.id,
            created_at=previous.created_at if previous else now,
        ))
    expenses.sort(key=lambda e: (e.date, e.id))
    return expenses
