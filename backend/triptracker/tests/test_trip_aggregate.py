"""
Tests for trip-scoped operations: expenses, budget re-evaluation, permissions and cascades.
"""
from datetime import date
from decimal import Decimal

import pytest

from triptracker.core.errors import (
    ConcurrentModificationError, InvalidEnumValueError, InvalidTransitionError,
    NotFoundError, PermissionDeniedError, UnknownCurrencyError, ValidationError
)
from triptracker.models.budget_alert import AlertStatus, AlertType, BudgetAlert
from triptracker.models.expense import Expense, ExpenseCategory
from triptracker.models.trip import Trip, TripStatus
from triptracker.models.trip_share import TripShare
from triptracker.services.trip_service import TripAggregate, create_trip


def active_alerts(aggregate, alert_type):
    return [
        a for a in aggregate.trip.alerts
        if a.alert_type == alert_type and a.status == AlertStatus.ACTIVE
    ]


def share_with(aggregate, owner, user, permission):
    share = aggregate.invite_share(owner.id, user.id, permission)
    aggregate.respond_to_share(user.id, share.id, accept=True)
    return share


# Budget scenarios

def test_warning_raised_then_resolved(aggregate, owner):
    expense = aggregate.add_expense(owner.id, "850.00", "USD", "Hotel", category="Accommodation", day_number=1)
    warnings = active_alerts(aggregate, AlertType.BUDGET_WARNING)
    assert len(warnings) == 1
    assert warnings[0].usage_percentage == Decimal("85.00")
    alert_id = warnings[0].id

    aggregate.remove_expense(owner.id, expense.id)
    alert = aggregate.get_alert(alert_id)
    assert alert.status == AlertStatus.RESOLVED
    assert alert.resolved_at is not None
    assert active_alerts(aggregate, AlertType.BUDGET_WARNING) == []


def test_over_budget_alert_is_urgent(aggregate, owner):
    aggregate.set_budget(owner.id, "500.00")
    aggregate.add_expense(owner.id, "600.00", "USD", "Flights", category="Transport", day_number=1)

    exceeded = active_alerts(aggregate, AlertType.BUDGET_EXCEEDED)
    assert len(exceeded) == 1
    assert exceeded[0].is_over_budget
    assert exceeded[0].is_urgent
    assert aggregate.last_evaluation.is_over_budget


def test_mixed_currency_summary(aggregate, owner):
    aggregate.set_budget(owner.id, "150.00")
    aggregate.add_expense(owner.id, "100.00", "EUR", "Dinner", category="Food", day_number=1)
    aggregate.add_expense(owner.id, "100.00", "USD", "Museum", category="Activities", day_number=2)

    summary = aggregate.get_budget_summary(owner.id)
    assert summary.total_spent == Decimal("217.65")
    assert summary.total_spent != Decimal("200.00")
    assert summary.remaining == Decimal("-67.65")
    assert summary.usage_percentage == Decimal("145.10")
    assert summary.is_over_budget
    assert summary.totals_by_currency == {"EUR": Decimal("100.00"), "USD": Decimal("100.00")}
    assert [c.category for c in summary.categories] == [ExpenseCategory.FOOD, ExpenseCategory.ACTIVITIES]
    assert [d.day_number for d in summary.days] == [1, 2]
    assert {a.alert_type for a in summary.alerts} == {AlertType.BUDGET_WARNING, AlertType.BUDGET_EXCEEDED}
    assert summary.warnings == []


def test_update_expense_reevaluates(aggregate, owner):
    expense = aggregate.add_expense(owner.id, "100.00", "USD", "Snacks", day_number=1)
    assert aggregate.trip.alerts == []

    aggregate.update_expense(owner.id, expense.id, amount="900.00")
    assert len(active_alerts(aggregate, AlertType.BUDGET_WARNING)) == 1

    aggregate.update_expense(owner.id, expense.id, status="Cancelled")
    assert active_alerts(aggregate, AlertType.BUDGET_WARNING) == []


def test_clearing_budget_resolves_alerts(aggregate, owner):
    aggregate.add_expense(owner.id, "900.00", "USD", "Hotel", day_number=1)
    aggregate.set_budget(owner.id, None)
    assert aggregate.trip.budget is None
    assert all(a.status == AlertStatus.RESOLVED for a in aggregate.trip.alerts)
    assert aggregate.get_budget_summary(owner.id).usage_percentage == Decimal("0.00")


def test_daily_and_category_limits(aggregate, owner):
    aggregate.update_budget_settings(
        owner.id, daily_spending_limit="200.00", category_limits={"food": "50.00"}
    )
    assert aggregate.trip.category_limits == {"Food": "50.00"}
    aggregate.add_expense(owner.id, "60.00", "USD", "Tapas", category="Food", day_number=3)
    aggregate.add_expense(owner.id, "150.00", "USD", "Tour", category="Activities", day_number=3)

    types = {a.alert_type: a for a in aggregate.trip.alerts}
    assert set(types) == {AlertType.CATEGORY_LIMIT, AlertType.DAILY_SPENDING_LIMIT}
    assert types[AlertType.DAILY_SPENDING_LIMIT].day_number == 3
    assert types[AlertType.CATEGORY_LIMIT].category == "Food"


def test_evaluate_budget_twice_changes_nothing(aggregate, owner):
    aggregate.add_expense(owner.id, "850.00", "USD", "Hotel", day_number=1)
    version = aggregate.trip.version

    evaluation = aggregate.evaluate_budget(owner.id)
    assert not evaluation.changed
    aggregate.evaluate_budget(owner.id)
    assert aggregate.trip.version == version
    assert len(aggregate.trip.alerts) == 1


def test_threshold_out_of_range(aggregate, owner):
    with pytest.raises(ValidationError):
        aggregate.update_budget_settings(owner.id, alert_threshold="150")


# Alert actions

def test_alert_actions(aggregate, owner):
    aggregate.add_expense(owner.id, "850.00", "USD", "Hotel", day_number=1)
    alert = aggregate.trip.alerts[0]

    aggregate.acknowledge_alert(owner.id, alert.id, "Will cook at home")
    assert alert.status == AlertStatus.ACKNOWLEDGED
    assert alert.action_taken == "Will cook at home"
    with pytest.raises(InvalidTransitionError):
        aggregate.dismiss_alert(owner.id, alert.id)

    aggregate.resolve_alert(owner.id, alert.id)
    assert alert.status == AlertStatus.RESOLVED


def test_dismissed_alert_stays_dismissed(aggregate, owner):
    aggregate.add_expense(owner.id, "850.00", "USD", "Hotel", day_number=1)
    alert = aggregate.trip.alerts[0]
    aggregate.dismiss_alert(owner.id, alert.id)

    aggregate.add_expense(owner.id, "10.00", "USD", "Coffee", day_number=2)
    assert [a.status for a in aggregate.trip.alerts] == [AlertStatus.DISMISSED]


def test_missing_alert(aggregate, owner):
    with pytest.raises(NotFoundError):
        aggregate.acknowledge_alert(owner.id, 9999)


# Expense validation

@pytest.mark.parametrize("amount", ["-5.00", "0", "10.001", "abc"])
def test_invalid_amounts(aggregate, owner, amount):
    with pytest.raises(ValidationError):
        aggregate.add_expense(owner.id, amount, "USD", "Bad", day_number=1)
    assert aggregate.trip.expenses == []


def test_unknown_currency(aggregate, owner):
    with pytest.raises(UnknownCurrencyError):
        aggregate.add_expense(owner.id, "10.00", "XYZ", "Bad", day_number=1)
    assert aggregate.trip.expenses == []


def test_unknown_category(aggregate, owner):
    with pytest.raises(InvalidEnumValueError) as exc_info:
        aggregate.add_expense(owner.id, "10.00", "USD", "Bad", category="Souvenirs", day_number=1)
    assert "Food" in exc_info.value.details["allowed"]


def test_unknown_expense_field(aggregate, owner):
    with pytest.raises(ValidationError):
        aggregate.add_expense(owner.id, "10.00", "USD", "Bad", day_number=1, tip_percent=10)


@pytest.mark.parametrize("day_number,expense_date", [
    (0, None),
    (6, None),
    (2, date(2026, 6, 3)),
    (None, date(2026, 5, 31)),
    (None, None),
])
def test_invalid_days(aggregate, owner, day_number, expense_date):
    with pytest.raises(ValidationError):
        aggregate.add_expense(owner.id, "10.00", "USD", "Bad", day_number=day_number, expense_date=expense_date)


def test_day_and_date_are_filled_in(aggregate, owner):
    by_date = aggregate.add_expense(owner.id, "10.00", "USD", "Bus", expense_date=date(2026, 6, 3))
    by_day = aggregate.add_expense(owner.id, "10.00", "USD", "Tram", day_number=5)
    assert by_date.day_number == 3
    assert by_day.expense_date == date(2026, 6, 5)


def test_list_expenses_filters(aggregate, owner):
    aggregate.add_expense(owner.id, "30.00", "USD", "Lunch", category="Food", day_number=1)
    aggregate.add_expense(owner.id, "100.00", "EUR", "Dinner", category="Food", day_number=2,
                          reimbursable=True)
    aggregate.add_expense(owner.id, "200.00", "USD", "Hotel", category="Accommodation", day_number=2)

    food = aggregate.list_expenses(owner.id, categories=["Food"])
    assert [e.description for e in food] == ["Lunch", "Dinner"]

    day_two = aggregate.list_expenses(owner.id, start=date(2026, 6, 2), end=date(2026, 6, 2))
    assert [e.description for e in day_two] == ["Dinner", "Hotel"]

    claimable = aggregate.list_expenses(owner.id, reimbursable=True)
    assert [e.description for e in claimable] == ["Dinner"]

    over_110_usd = aggregate.list_expenses(owner.id, min_amount="110", amount_currency="USD")
    assert [e.description for e in over_110_usd] == ["Dinner", "Hotel"]


def test_missing_expense(aggregate, owner):
    with pytest.raises(NotFoundError):
        aggregate.update_expense(owner.id, 9999, amount="1.00")


# Atomicity

def test_failed_reevaluation_rolls_back_expense(aggregate, owner, session_factory, monkeypatch):
    """Expense and alert changes are committed together or not at all."""
    def fail(trip):
        raise RuntimeError("monitor unavailable")

    monkeypatch.setattr(aggregate.monitor, "evaluate", fail)
    with pytest.raises(RuntimeError):
        aggregate.add_expense(owner.id, "900.00", "USD", "Hotel", day_number=1)

    assert aggregate.trip.expenses == []
    with session_factory() as check:
        assert check.query(Expense).count() == 0
        assert check.query(BudgetAlert).count() == 0


def test_concurrent_expense_adds(session_factory, trip, owner, converter, clock):
    """The second writer on a trip loaded before the first commit is rejected."""
    first = session_factory()
    second = session_factory()
    try:
        slow = TripAggregate.load(first, trip.id, converter=converter, clock=clock)
        fast = TripAggregate.load(second, trip.id, converter=converter, clock=clock)
        fast.add_expense(owner.id, "10.00", "USD", "Coffee", day_number=1)

        with pytest.raises(ConcurrentModificationError):
            slow.add_expense(owner.id, "20.00", "USD", "Lunch", day_number=1)
    finally:
        first.close()
        second.close()

    with session_factory() as check:
        assert [e.description for e in check.query(Expense).all()] == ["Coffee"]


@pytest.mark.parametrize("action", ["acknowledge_alert", "dismiss_alert"])
def test_alert_action_after_concurrent_resolution(aggregate, owner, session_factory, converter, clock, action):
    """An alert resolved by another request cannot be acted on from a stale copy."""
    expense = aggregate.add_expense(owner.id, "850.00", "USD", "Hotel", day_number=1)
    alert_id = aggregate.trip.alerts[0].id

    first = session_factory()
    second = session_factory()
    try:
        stale = TripAggregate.load(first, aggregate.trip.id, converter=converter, clock=clock)
        assert stale.get_alert(alert_id).status == AlertStatus.ACTIVE

        fresh = TripAggregate.load(second, aggregate.trip.id, converter=converter, clock=clock)
        fresh.remove_expense(owner.id, expense.id)
        assert fresh.get_alert(alert_id).status == AlertStatus.RESOLVED

        with pytest.raises(ConcurrentModificationError):
            getattr(stale, action)(owner.id, alert_id)
    finally:
        first.close()
        second.close()

    with session_factory() as check:
        stored = check.get(BudgetAlert, alert_id)
        assert stored.status == AlertStatus.RESOLVED
        assert stored.acknowledged_at is None


# Permissions

def test_stranger_cannot_touch_trip(aggregate, alice):
    with pytest.raises(PermissionDeniedError):
        aggregate.add_expense(alice.id, "10.00", "USD", "Sneaky", day_number=1)
    with pytest.raises(PermissionDeniedError):
        aggregate.get_budget_summary(alice.id)
    with pytest.raises(PermissionDeniedError):
        aggregate.list_expenses(alice.id)
    with pytest.raises(PermissionDeniedError):
        aggregate.evaluate_budget(alice.id)
    assert aggregate.trip.expenses == []


def test_view_share_is_read_only(aggregate, owner, alice):
    share_with(aggregate, owner, alice, "View")
    assert aggregate.list_expenses(alice.id) == []
    with pytest.raises(PermissionDeniedError):
        aggregate.add_expense(alice.id, "10.00", "USD", "Taxi", day_number=1)
    with pytest.raises(PermissionDeniedError):
        aggregate.set_budget(alice.id, "2000.00")


def test_edit_share_can_add_expenses(aggregate, owner, alice):
    share_with(aggregate, owner, alice, "Edit")
    expense = aggregate.add_expense(alice.id, "10.00", "USD", "Taxi", day_number=1)
    assert expense.id is not None


def test_only_owner_deletes(aggregate, owner, alice):
    share_with(aggregate, owner, alice, "Admin")
    with pytest.raises(PermissionDeniedError):
        aggregate.delete(alice.id)


# Trip lifecycle

def test_delete_trip_cascades(aggregate, owner, alice, db):
    aggregate.add_expense(owner.id, "900.00", "USD", "Hotel", day_number=1)
    aggregate.invite_share(owner.id, alice.id, "View")
    trip_id = aggregate.trip.id

    aggregate.delete(owner.id)
    assert db.get(Trip, trip_id) is None
    assert db.query(Expense).count() == 0
    assert db.query(TripShare).count() == 0
    assert db.query(BudgetAlert).count() == 0


def test_update_details(aggregate, owner):
    trip = aggregate.update_details(owner.id, title="  Porto  ", status="active")
    assert trip.title == "Porto"
    assert trip.status == TripStatus.ACTIVE
    with pytest.raises(InvalidEnumValueError):
        aggregate.update_details(owner.id, status="Paused")


def test_create_trip_validation(db, owner, converter):
    with pytest.raises(ValidationError):
        create_trip(db, owner.id, "Bad dates", "Nowhere", date(2026, 6, 5), date(2026, 6, 1))
    with pytest.raises(UnknownCurrencyError):
        create_trip(db, owner.id, "Bad currency", "Nowhere", date(2026, 6, 1), date(2026, 6, 5),
                    currency="XYZ", converter=converter)
    with pytest.raises(NotFoundError):
        create_trip(db, 9999, "No owner", "Nowhere", date(2026, 6, 1), date(2026, 6, 5))


def test_create_trip_defaults(db, owner):
    trip = create_trip(db, owner.id, "Weekend", "Berlin", date(2026, 7, 1), date(2026, 7, 2), currency="eur")
    assert trip.currency == "EUR"
    assert trip.budget is None
    assert trip.status == TripStatus.PLANNING
    assert trip.version == 1
    assert trip.duration_days == 2
