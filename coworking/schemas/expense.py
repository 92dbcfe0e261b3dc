import datetime as dt
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from coworking.schemas.booking import utcnow
from coworking.schemas.status import Currency


class ExpenseCategory(str, Enum):
    RENT = "rent"
    SUPPLIES = "supplies"
    INTERNET = "internet"
    BILLS = "bills"
    ACCOUNTANT = "accountant"


def new_expense_id() -> str:
    return f"expense-{uuid.uuid4().hex}"


def new_recurring_expense_id() -> str:
    return f"rule-{uuid.uuid4().hex}"


class ExpenseBase(BaseModel):
    amount: float = Field(ge=0)
    currency: Currency
    category: ExpenseCategory
    description: Optional[str] = None


class Expense(ExpenseBase):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=new_expense_id)
    date: dt.date
    is_recurring: bool = False
    recurring_expense_id: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=utcnow)


class RecurringExpense(ExpenseBase):
    """
    Template for one expense per month.
    Days past the end of a shorter month are clamped to its last day.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=new_recurring_expense_id)
    day_of_month: int = Field(default=1, ge=1, le=31)
    is_active: bool = True
    created_at: dt.datetime = Field(default_factory=utcnow)


class GenerateRequest(BaseModel):
    year: int = Field(ge=1970, le=9999)
    month: int = Field(ge=1, le=12)


class ExpenseCreate(ExpenseBase):
    date: dt.date


class RecurringExpenseCreate(ExpenseBase):
    day_of_month: int = Field(default=1, ge=1, le=31)
    is_active: bool = True
