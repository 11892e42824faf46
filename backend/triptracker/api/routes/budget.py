"""
Budget and budget alert routes.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from triptracker.db.session import get_db
from triptracker.models.user import User
from triptracker.models.budget_alert import AlertStatus
from triptracker.schemas.budget import (
    AlertAction, BudgetAlertResponse, BudgetEvaluationResponse, BudgetSummary
)
from triptracker.api.dependencies import get_current_user, get_currency_converter
from triptracker.services.currency_service import CurrencyConverter
from triptracker.services.trip_service import TripAggregate

router = APIRouter(prefix="/budget", tags=["budget"])


def _alerts(alerts) -> List[BudgetAlertResponse]:
    return [BudgetAlertResponse.model_validate(alert) for alert in alerts]


@router.get("/{trip_id}/summary", response_model=BudgetSummary)
async def get_budget_summary(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """
    Get budget summary with spending by category and by day.

    Totals are converted into the trip currency; expenses in currencies
    without a rate are left out and listed in warnings.
    """
    aggregate = TripAggregate.load(db, trip_id, converter=converter)
    return aggregate.get_budget_summary(current_user.id)


@router.post("/{trip_id}/evaluate", response_model=BudgetEvaluationResponse)
async def evaluate_budget(
    trip_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    converter: CurrencyConverter = Depends(get_currency_converter)
):
    """Re-run the budget monitor for a trip."""
    aggregate = TripAggregate.load(db, trip_id, converter=converter)
    evaluation = aggregate.evaluate_budget(current_user.id)
    return BudgetEvaluationResponse(
        trip_id=trip_id,
        currency=evaluation.currency,
        budget=evaluation.budget,
        total_spent=evaluation.total_spent,
        usage_percentage=evaluation.usage_percentage,
        threshold_percentage=evaluation.threshold_percentage,
        is_over_budget=evaluation.is_over_budget,
        created=_alerts(evaluation.created),
        updated=_alerts(evaluation.updated),
        resolved=_alerts(evaluation.resolved),
        warnings=evaluation.warnings
    )


@router.get("/{trip_id}/alerts", response_model=List[BudgetAlertResponse])
async def list_alerts(
    trip_id: int,
    alert_status: Optional[AlertStatus] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List a trip's alerts, newest first."""
    aggregate = TripAggregate.load(db, trip_id)
    aggregate.require_view(current_user.id)
    alerts = [
        alert for alert in aggregate.trip.alerts
        if alert_status is None or alert.status == alert_status
    ]
    return _alerts(sorted(alerts, key=lambda a: a.id, reverse=True))


@router.post("/{trip_id}/alerts/{alert_id}/acknowledge", response_model=BudgetAlertResponse)
async def acknowledge_alert(
    trip_id: int,
    alert_id: int,
    action: Optional[AlertAction] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    aggregate = TripAggregate.load(db, trip_id)
    return aggregate.acknowledge_alert(current_user.id, alert_id, action.action_taken if action else None)


@router.post("/{trip_id}/alerts/{alert_id}/dismiss", response_model=BudgetAlertResponse)
async def dismiss_alert(
    trip_id: int,
    alert_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    aggregate = TripAggregate.load(db, trip_id)
    return aggregate.dismiss_alert(current_user.id, alert_id)


@router.post("/{trip_id}/alerts/{alert_id}/resolve", response_model=BudgetAlertResponse)
async def resolve_alert(
    trip_id: int,
    alert_id: int,
    action: Optional[AlertAction] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    aggregate = TripAggregate.load(db, trip_id)
    return aggregate.resolve_alert(current_user.id, alert_id, action.action_taken if action else None)
