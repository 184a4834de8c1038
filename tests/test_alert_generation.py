import datetime as dt

import pytest

from stockwatch.core.exceptions import ComponentNotFoundError, PartialGenerationFailure
from stockwatch.models.alert_models import AlertStatus, AlertType, StockAlert
from stockwatch.models.inventory_models import LotState
from stockwatch.services.alerts import AlertRepository, build_alert_service
from stockwatch.services.alerts import generation_service



def _alerts(db, **criteria):
    query = db.query(StockAlert).populate_existing()
    for key, value in criteria.items():
        query = query.filter(getattr(StockAlert, key) == value)
    return query.order_by(StockAlert.id).all()


def test_quantity_below_floor_opens_only_critical(db_session, clock, make_component):
    component = make_component(quantity=1, minimum=10)
    service = build_alert_service(db_session, clock=clock)

    result = service.generate_alerts()

    assert result.total_created == 1
    assert result.counts_by_type[AlertType.STOCK_CRITICAL] == 1
    assert result.counts_by_type[AlertType.STOCK_MINIMUM] == 0
    (alert,) = _alerts(db_session, component_id=component.id)
    assert alert.alert_type is AlertType.STOCK_CRITICAL
    assert alert.status is AlertStatus.OPEN
    assert alert.lot_id is None
    assert alert.trigger_value == 1


def test_quantity_below_minimum_opens_warning(db_session, clock, make_component):
    make_component(name="Seal kit", quantity=5, minimum=10)
    make_component(name="Gasket", quantity=10, minimum=10)
    make_component(name="Bolt", quantity=5, minimum=None)

    result = build_alert_service(db_session, clock=clock).generate_alerts()

    assert result.total_created == 1
    (alert,) = _alerts(db_session)
    assert alert.alert_type is AlertType.STOCK_MINIMUM
    assert "Seal kit" in alert.message


def test_second_sweep_is_a_no_op(db_session, clock, make_component, make_lot):
    component = make_component(quantity=1, minimum=10)
    make_lot(component, expires_at=clock() + dt.timedelta(days=5))
    service = build_alert_service(db_session, clock=clock)

    first = service.generate_alerts()
    second = service.generate_alerts()

    assert first.total_created == 2
    assert second.total_created == 0
    assert second.failures == []
    assert len(_alerts(db_session)) == 2


def test_lot_expiring_in_five_days_is_critical(db_session, clock, make_component, make_lot):
    component = make_component(name="Oil filter", quantity=50)
    lot = make_lot(component, lot_code="L-42", expires_at=clock() + dt.timedelta(days=5))

    result = build_alert_service(db_session, clock=clock).generate_alerts()

    assert result.counts_by_type[AlertType.EXPIRATION_CRITICAL] == 1
    (alert,) = _alerts(db_session, lot_id=lot.id)
    assert alert.alert_type is AlertType.EXPIRATION_CRITICAL
    assert alert.component_id is None
    assert "L-42" in alert.message
    assert "5" in alert.message
    assert alert.trigger_value == 5


def test_upcoming_lot_is_not_reflagged_the_next_day(db_session, clock, make_component, make_lot):
    component = make_component(quantity=50)
    lot = make_lot(component, expires_at=clock() + dt.timedelta(days=20))
    service = build_alert_service(db_session, clock=clock)

    first = service.generate_alerts()
    clock.advance(days=1)
    second = service.generate_alerts()

    assert first.counts_by_type[AlertType.EXPIRATION_UPCOMING] == 1
    assert second.total_created == 0
    (alert,) = _alerts(db_session, lot_id=lot.id)
    assert "20 days" in alert.message


def test_upcoming_lot_crossing_into_critical_opens_critical(db_session, clock, make_component, make_lot):
    component = make_component(quantity=50)
    lot = make_lot(component, expires_at=clock() + dt.timedelta(days=20))
    service = build_alert_service(db_session, clock=clock)

    service.generate_alerts()
    clock.advance(days=14)
    result = service.generate_alerts()

    assert result.counts_by_type[AlertType.EXPIRATION_CRITICAL] == 1
    types = {a.alert_type for a in _alerts(db_session, lot_id=lot.id, status=AlertStatus.OPEN)}
    assert types == {AlertType.EXPIRATION_UPCOMING, AlertType.EXPIRATION_CRITICAL}


def test_lot_scan_skips_ineligible_lots(db_session, clock, make_component, make_lot):
    component = make_component(quantity=50)
    make_lot(component, lot_code="NO-EXP", expires_at=None)
    make_lot(component, lot_code="EMPTY", expires_at=clock() + dt.timedelta(days=3), quantity=0)
    make_lot(component, lot_code="DONE", expires_at=clock() + dt.timedelta(days=3), state=LotState.DEPLETED)
    make_lot(component, lot_code="FAR", expires_at=clock() + dt.timedelta(days=45))

    result = build_alert_service(db_session, clock=clock).generate_alerts()

    assert result.total_created == 0
    assert _alerts(db_session) == []


def test_expired_lot_with_stock_is_flagged(db_session, clock, make_component, make_lot):
    component = make_component(quantity=50)
    make_lot(component, lot_code="OLD", expires_at=clock() - dt.timedelta(days=3))

    build_alert_service(db_session, clock=clock).generate_alerts()

    (alert,) = _alerts(db_session)
    assert alert.alert_type is AlertType.EXPIRATION_CRITICAL
    assert "expired 3 days ago" in alert.message


def test_critical_supersedes_open_minimum(db_session, clock, make_component):
    component = make_component(quantity=5, minimum=10)
    service = build_alert_service(db_session, clock=clock)
    service.generate_alerts()
    (minimum,) = _alerts(db_session, alert_type=AlertType.STOCK_MINIMUM)

    component.quantity_on_hand = 1
    db_session.commit()
    clock.advance(hours=2)
    result = service.generate_alerts()

    assert result.counts_by_type[AlertType.STOCK_CRITICAL] == 1
    assert result.superseded == 1
    (critical,) = _alerts(db_session, alert_type=AlertType.STOCK_CRITICAL)
    minimum = db_session.get(StockAlert, minimum.id, populate_existing=True)
    assert minimum.status is AlertStatus.RESOLVED
    assert minimum.resolved_by == 0
    assert minimum.resolution_notes == f"Superseded by STOCK_CRITICAL alert {critical.id}"
    open_types = [a.alert_type for a in _alerts(db_session, component_id=component.id, status=AlertStatus.OPEN)]
    assert open_types == [AlertType.STOCK_CRITICAL]


def test_resolved_condition_retriggers_as_new_alert(db_session, clock, make_component):
    make_component(quantity=1, minimum=10)
    service = build_alert_service(db_session, clock=clock)
    service.generate_alerts()
    (first,) = _alerts(db_session)

    service.resolve_alert(first.id, resolved_by=7, notes="Reorder placed")
    result = service.generate_alerts()

    assert result.counts_by_type[AlertType.STOCK_CRITICAL] == 1
    alerts = _alerts(db_session)
    assert len(alerts) == 2
    assert alerts[0].status is AlertStatus.RESOLVED
    assert alerts[1].status is AlertStatus.OPEN
    assert alerts[1].id != first.id


def test_failing_component_does_not_abort_sweep(db_session, clock, make_component, monkeypatch):
    broken = make_component(name="Broken", quantity=1)
    healthy = make_component(name="Healthy", quantity=1)
    real_classify = generation_service.classify_stock

    def flaky_classify(name, *args, **kwargs):
        if name == "Broken":
            raise RuntimeError("ledger row unreadable")
        return real_classify(name, *args, **kwargs)

    monkeypatch.setattr(generation_service, "classify_stock", flaky_classify)

    result = build_alert_service(db_session, clock=clock).generate_alerts()

    assert result.total_created == 1
    assert [(f.subject, f.subject_id) for f in result.failures] == [("component", broken.id)]
    assert result.failures[0].error == "ledger row unreadable"
    assert _alerts(db_session, component_id=healthy.id)

    with pytest.raises(PartialGenerationFailure) as exc_info:
        result.raise_for_failures()
    assert exc_info.value.failed_items == [("component", broken.id)]
    assert exc_info.value.code == "GEN200"


def test_failing_lot_does_not_abort_sweep(db_session, clock, make_component, make_lot, monkeypatch):
    component = make_component(quantity=50)
    bad_lot = make_lot(component, lot_code="BAD-1", expires_at=clock() + dt.timedelta(days=3))
    good_lot = make_lot(component, lot_code="GOOD-1", expires_at=clock() + dt.timedelta(days=4))
    real_classify = generation_service.classify_expiration

    def flaky_classify(lot_code, *args, **kwargs):
        if lot_code == "BAD-1":
            raise RuntimeError("lot row unreadable")
        return real_classify(lot_code, *args, **kwargs)

    monkeypatch.setattr(generation_service, "classify_expiration", flaky_classify)

    result = build_alert_service(db_session, clock=clock).generate_alerts()

    assert result.counts_by_type[AlertType.EXPIRATION_CRITICAL] == 1
    assert [(f.subject, f.subject_id) for f in result.failures] == [("lot", bad_lot.id)]
    (alert,) = _alerts(db_session)
    assert alert.lot_id == good_lot.id
    assert _alerts(db_session, lot_id=bad_lot.id) == []


def test_store_swallows_duplicate_open_alert(db_session, clock, make_component):
    component = make_component(quantity=1)
    repository = AlertRepository(db_session, clock)

    def candidate():
        return StockAlert(
            alert_type=AlertType.STOCK_CRITICAL,
            component_id=component.id,
            message="CRITICAL: stock on hand (1)",
            trigger_value=1,
            threshold_value=2,
        )

    assert repository.create(candidate()) is not None
    assert repository.create(candidate()) is None
    assert len(_alerts(db_session)) == 1


def test_sweep_losing_insert_race_skips_silently(db_session, clock, make_component, monkeypatch):
    component = make_component(quantity=1)
    service = build_alert_service(db_session, clock=clock)
    service.generate_alerts()

    # Another sweep already inserted the row between the existence check and the insert
    real_has_open = AlertRepository.has_open_alert
    calls = {"n": 0}

    def stale_check(self, *args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            return False
        return real_has_open(self, *args, **kwargs)

    monkeypatch.setattr(AlertRepository, "has_open_alert", stale_check)
    result = service.generate_alerts()

    assert result.total_created == 0
    assert result.failures == []
    assert len(_alerts(db_session, component_id=component.id)) == 1


def test_evaluate_component(db_session, clock, make_component):
    target = make_component(name="Target", quantity=3, minimum=10)
    make_component(name="Other", quantity=0)

    result = build_alert_service(db_session, clock=clock).evaluate_component(target.id)

    assert result.counts_by_type[AlertType.STOCK_MINIMUM] == 1
    assert result.total_created == 1
    (alert,) = _alerts(db_session)
    assert alert.component_id == target.id


def test_evaluate_unknown_component(db_session, clock):
    with pytest.raises(ComponentNotFoundError) as exc_info:
        build_alert_service(db_session, clock=clock).evaluate_component(999)
    assert exc_info.value.status_code == 404
