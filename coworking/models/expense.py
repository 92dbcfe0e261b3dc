from sqlalchemy import Boolean, Column, Date, Integer, Numeric, String
from coworking.db import Base, UTCDateTime


class ExpenseRow(Base):
    __tablename__ = "expenses"

    id = Column(String, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    currency = Column(String, nullable=False)
    category = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_expense_id = Column(String, nullable=True, index=True)
    created_at = Column(UTCDateTime(timezone=True), nullable=False)


class RecurringExpenseRow(Base):
    __tablename__ = "recurring_expenses"

    id = Column(String, primary_key=True, index=True)
    amount = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    currency = Column(String, nullable=False)
    category = Column(String, nullable=False)
    description = Column(String, nullable=True)
    day_of_month = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(UTCDateTime(timezone=True), nullable=False)
