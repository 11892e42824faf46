"""
Trip model, the aggregate root for expenses, shares and budget alerts.
"""
from datetime import date, timedelta
from sqlalchemy import Column, String, Date, Numeric, Integer, JSON, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from triptracker.db.base import BaseModel
import enum


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    PLANNING = "Planning"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TripVisibility(str, enum.Enum):
    """Trip visibility enumeration."""
    PRIVATE = "Private"
    SHARED = "Shared"
    PUBLIC = "Public"


class Trip(BaseModel):
    """Trip model owning its expenses, shares and alerts."""
    __tablename__ = "trips"

    title = Column(String(200), nullable=False)
    destination = Column(String(200), nullable=False)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False, index=True)
    budget = Column(Numeric(12, 2), nullable=True)  # NULL means no budget set
    currency = Column(String(3), nullable=False, default="USD")  # Currency of the budget
    status = Column(SQLEnum(TripStatus), default=TripStatus.PLANNING, nullable=False)
    visibility = Column(SQLEnum(TripVisibility), default=TripVisibility.PRIVATE, nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Alert configuration; NULL falls back to settings
    alert_threshold = Column(Numeric(5, 2), nullable=True)
    daily_spending_limit = Column(Numeric(12, 2), nullable=True)
    category_limits = Column(JSON, nullable=True)  # {"Food": "300.00", ...} in trip currency

    version = Column(Integer, nullable=False)

    # Ownership is one-directional: children only know trip_id
    expenses = relationship("Expense", cascade="all, delete-orphan", order_by="Expense.id")
    shares = relationship("TripShare", cascade="all, delete-orphan", order_by="TripShare.id")
    alerts = relationship("BudgetAlert", cascade="all, delete-orphan", order_by="BudgetAlert.id")

    __mapper_args__ = {"version_id_col": version}

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def day_number_for(self, on: date) -> int:
        """1-based day of the trip for a calendar date."""
        return (on - self.start_date).days + 1

    def date_for_day(self, day_number: int) -> date:
        return self.start_date + timedelta(days=day_number - 1)

    def is_owner(self, user_id: int) -> bool:
        return user_id is not None and self.owner_id == user_id
