"""
Expense model for tracking spending.
"""
from sqlalchemy import Column, String, Numeric, Date, Boolean, Enum as SQLEnum, ForeignKey, Integer, Text
from triptracker.db.base import BaseModel
import enum


class ExpenseCategory(str, enum.Enum):
    """Expense category enumeration."""
    ACCOMMODATION = "Accommodation"
    FOOD = "Food"
    TRANSPORT = "Transport"
    ACTIVITIES = "Activities"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    INSURANCE = "Insurance"
    VISAS = "Visas"
    FEES = "Fees"
    TIPS = "Tips"
    OTHER = "Other"


class ExpenseStatus(str, enum.Enum):
    """Expense payment status enumeration."""
    PENDING = "Pending"
    PAID = "Paid"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


# Statuses that count towards spending
SPENDING_STATUSES = frozenset({ExpenseStatus.PENDING, ExpenseStatus.PAID})


class Expense(BaseModel):
    """Expense model representing a single spending event."""
    __tablename__ = "expenses"

    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    day_number = Column(Integer, nullable=False, index=True)
    expense_date = Column(Date, nullable=False, index=True)
    category = Column(SQLEnum(ExpenseCategory), nullable=False, default=ExpenseCategory.OTHER)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)  # Always in the expense's own currency
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(SQLEnum(ExpenseStatus), nullable=False, default=ExpenseStatus.PAID)

    vendor = Column(String(200), nullable=True)
    payment_method = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    reimbursable = Column(Boolean, nullable=False, default=False)
    reimbursed = Column(Boolean, nullable=False, default=False)
    reimbursement_reference = Column(String(100), nullable=True)

    @property
    def counts_as_spending(self) -> bool:
        # Column defaults only apply on flush; unsaved expenses default to Paid
        return (self.status or ExpenseStatus.PAID) in SPENDING_STATUSES
