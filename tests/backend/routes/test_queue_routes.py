from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from backend.models.queue_item import QueueItem, QueuePriority, QueueStatus
from backend.routes.queue_routes import (
    CreateQueueItemRequest,
    UpdateQueueItemRequest,
    add_to_queue,
    assign_doctor,
    get_queue_entry,
    list_queue,
    queue_stats,
    remove_from_queue,
    update_queue_entry,
    update_queue_priority,
    update_queue_status,
)


def _add(db, name: str, priority: QueuePriority = QueuePriority.NORMAL, arrived_minutes_ago: int = 0):
    response = add_to_queue(
        CreateQueueItemRequest(patient_name=name, patient_phone='+1234567890', priority=priority),
        db=db,
    )
    if arrived_minutes_ago:
        item = db.query(QueueItem).filter(QueueItem.id == response.id).first()
        item.arrival_time = datetime.now() - timedelta(minutes=arrived_minutes_ago)
        db.commit()
    return response


def test_add_to_queue_sets_arrival_and_default_wait(db) -> None:
    response = _add(db, 'John Doe')

    assert response.status == QueueStatus.WAITING
    assert response.arrival_time is not None
    assert response.estimated_wait_time == 15


def test_list_queue_orders_by_priority_then_arrival(db) -> None:
    _add(db, 'Late Normal', arrived_minutes_ago=5)
    _add(db, 'Early Normal', arrived_minutes_ago=30)
    _add(db, 'Urgent', QueuePriority.URGENT, arrived_minutes_ago=1)
    _add(db, 'Emergency', QueuePriority.EMERGENCY)

    names = [item.patient_name for item in list_queue(db=db)]

    assert names == ['Emergency', 'Urgent', 'Early Normal', 'Late Normal']


def test_list_queue_reports_wait_minutes(db) -> None:
    _add(db, 'John Doe', arrived_minutes_ago=20)

    [item] = list_queue(db=db)

    assert 19 <= item.wait_minutes <= 21


def test_update_queue_status_records_called_and_completed_times(db) -> None:
    entry = _add(db, 'John Doe')

    called = update_queue_status(entry.id, new_status=QueueStatus.WITH_DOCTOR, db=db)
    assert called.called_time is not None
    assert called.completed_time is None

    completed = update_queue_status(entry.id, new_status=QueueStatus.COMPLETED, db=db)
    assert completed.completed_time is not None


def test_queue_stats_counts_by_status(db) -> None:
    first = _add(db, 'A')
    second = _add(db, 'B')
    _add(db, 'C')
    update_queue_status(first.id, new_status=QueueStatus.WITH_DOCTOR, db=db)
    update_queue_status(second.id, new_status=QueueStatus.COMPLETED, db=db)

    stats = queue_stats(db=db)

    assert (stats.waiting, stats.with_doctor, stats.completed, stats.total) == (1, 1, 1, 3)


def test_update_queue_priority_and_details(db) -> None:
    entry = _add(db, 'John Doe')

    update_queue_priority(entry.id, priority=QueuePriority.URGENT, db=db)
    response = update_queue_entry(entry.id, UpdateQueueItemRequest(symptoms='Chest pain'), db=db)

    assert response.priority == QueuePriority.URGENT
    assert response.symptoms == 'Chest pain'


def test_assign_doctor_requires_existing_doctor(db, make_doctor) -> None:
    entry = _add(db, 'John Doe')
    doctor = make_doctor()

    with pytest.raises(HTTPException) as exception_info:
        assign_doctor(entry.id, doctor_id='missing', db=db)
    assert exception_info.value.status_code == 404

    response = assign_doctor(entry.id, doctor_id=doctor.id, db=db)
    assert response.assigned_doctor_id == doctor.id


def test_remove_from_queue_then_lookup_returns_404(db) -> None:
    entry = _add(db, 'John Doe')

    remove_from_queue(entry.id, db=db)

    with pytest.raises(HTTPException) as exception_info:
        get_queue_entry(entry.id, db=db)
    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Queue item not found'


def test_get_queue_entry_database_failure_returns_503(db, monkeypatch: pytest.MonkeyPatch) -> None:
    entry = _add(db, 'John Doe')

    def failing_query(*args, **kwargs):
        raise OperationalError('SELECT 1', {}, Exception('database is locked'))

    monkeypatch.setattr(db, 'query', failing_query)

    with pytest.raises(HTTPException) as exception_info:
        get_queue_entry(entry.id, db=db)
    assert exception_info.value.status_code == 503
