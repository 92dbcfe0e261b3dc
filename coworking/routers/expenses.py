import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from coworking.context import StoreContext, get_store
from coworking.schemas.expense import (
    Expense,
    ExpenseCreate,
    GenerateRequest,
    RecurringExpense,
    RecurringExpenseCreate,
)
from coworking.utils.http_errors import store_errors

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/expenses",
    tags=["expenses"],
)

recurring_router = APIRouter(
    prefix="/recurring-expenses",
    tags=["recurring expenses"],
)


@router.get("/", response_model=List[Expense])
async def get_expenses(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    store: StoreContext = Depends(get_store),
):
    """
    Retrieve expenses, optionally limited to a date range.
    """
    with store_errors():
        return await store.get_expenses(start_date, end_date)


@router.post("/", response_model=Expense, status_code=status.HTTP_201_CREATED)
async def create_expense(expense: ExpenseCreate, store: StoreContext = Depends(get_store)):
    """
    Record a one-off expense.

    - **date**: Day the expense applies to.
    - **amount**: Non-negative amount.
    - **currency** / **category** / **description**: Details of the expense.
    """
    with store_errors():
        return await store.save_expense(expense)


@router.put("/{expense_id}", response_model=Expense)
async def update_expense(expense_id: str, expense: ExpenseCreate, store: StoreContext = Depends(get_store)):
    with store_errors():
        return await store.save_expense({**expense.model_dump(), "id": expense_id})


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(expense_id: str, store: StoreContext = Depends(get_store)):
    with store_errors():
        await store.delete_expense(expense_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@recurring_router.get("/", response_model=List[RecurringExpense])
async def get_recurring_expenses(store: StoreContext = Depends(get_store)):
    """
    Retrieve every recurring expense rule.
    """
    with store_errors():
        return await store.get_recurring_expenses()


@recurring_router.post("/", response_model=RecurringExpense, status_code=status.HTTP_201_CREATED)
async def create_recurring_expense(rule: RecurringExpenseCreate, store: StoreContext = Depends(get_store)):
    """
    Create a rule that generates one expense per month.

    - **day_of_month**: 1 to 31; shorter months use their last day.
    - **is_active**: Inactive rules are skipped by generation.

    Already generated expenses are not touched.
    """
    with store_errors():
        return await store.save_recurring_expense(rule)


@recurring_router.put("/{rule_id}", response_model=RecurringExpense)
async def update_recurring_expense(
    rule_id: str,
    rule: RecurringExpenseCreate,
    store: StoreContext = Depends(get_store),
):
    with store_errors():
        existing = {r.id: r for r in await store.get_recurring_expenses()}
        data = {**rule.model_dump(), "id": rule_id}
        if rule_id in existing:
            data["created_at"] = existing[rule_id].created_at
        return await store.save_recurring_expense(data)


@recurring_router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recurring_expense(rule_id: str, store: StoreContext = Depends(get_store)):
    """
    Delete a rule. Expenses it already generated are kept.
    """
    with store_errors():
        await store.delete_recurring_expense(rule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@recurring_router.post("/generate", response_model=List[Expense])
async def generate_recurring_expenses(request: GenerateRequest, store: StoreContext = Depends(get_store)):
    """
    Materialize the active rules as expenses of one month.

    - **year**: Year to generate.
    - **month**: Month to generate, 1 to 12.

    Running it again for the same month rewrites the same expenses.
    """
    logger.debug(f"Generating recurring expenses for {request.year}-{request.month:02d}")
    with store_errors():
        return await store.generate_recurring_expenses(request.year, request.month)
