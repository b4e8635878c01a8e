from datetime import datetime

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.database import get_db
from backend.models.queue_item import (
    DEFAULT_ESTIMATED_WAIT_MINUTES,
    PRIORITY_RANK,
    QueueItem,
    QueuePriority,
    QueueStatus,
)
from backend.routes.common import database_unavailable
from backend.routes.doctor_routes import get_active_doctor

router = APIRouter(tags=['queue'], dependencies=[Depends(get_current_user)])

QUEUE_ITEM_NOT_FOUND_DETAIL = 'Queue item not found'


class CreateQueueItemRequest(BaseModel):
    patient_name: str
    patient_phone: str
    patient_email: str | None = None
    patient_notes: str | None = None
    symptoms: str | None = None
    priority: QueuePriority = QueuePriority.NORMAL
    notes: str | None = None

    @field_validator('patient_name', 'patient_phone')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('This field is required.')
        return normalized


class UpdateQueueItemRequest(BaseModel):
    patient_name: str | None = None
    patient_phone: str | None = None
    patient_email: str | None = None
    patient_notes: str | None = None
    symptoms: str | None = None
    estimated_wait_time: int | None = None
    notes: str | None = None


class QueueItemResponse(BaseModel):
    id: str
    patient_name: str
    patient_phone: str
    patient_email: str | None = None
    patient_notes: str | None = None
    symptoms: str | None = None
    status: QueueStatus
    priority: QueuePriority
    arrival_time: datetime | None = None
    called_time: datetime | None = None
    completed_time: datetime | None = None
    estimated_wait_time: int
    wait_minutes: int
    assigned_doctor_id: str | None = None
    notes: str | None = None


class QueueStatsResponse(BaseModel):
    waiting: int
    with_doctor: int
    completed: int
    total: int


def to_response(item: QueueItem, now: datetime | None = None) -> QueueItemResponse:
    return QueueItemResponse(
        id=item.id,
        patient_name=item.patient_name,
        patient_phone=item.patient_phone,
        patient_email=item.patient_email,
        patient_notes=item.patient_notes,
        symptoms=item.symptoms,
        status=item.status,
        priority=item.priority,
        arrival_time=item.arrival_time,
        called_time=item.called_time,
        completed_time=item.completed_time,
        estimated_wait_time=item.estimated_wait_time,
        wait_minutes=item.wait_minutes(now or datetime.now()),
        assigned_doctor_id=item.assigned_doctor_id,
        notes=item.notes,
    )


def get_queue_item(item_id: str, db: Session) -> QueueItem:
    try:
        item = db.query(QueueItem).filter(QueueItem.id == item_id).first()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=QUEUE_ITEM_NOT_FOUND_DETAIL)
    return item


def _save(item: QueueItem, db: Session) -> QueueItemResponse:
    try:
        db.commit()
        db.refresh(item)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
    return to_response(item)


@router.post('', response_model=QueueItemResponse, status_code=status.HTTP_201_CREATED)
def add_to_queue(data: CreateQueueItemRequest, db: Session = Depends(get_db)):
    item = QueueItem(
        **{**data.model_dump(), 'priority': data.priority.value},
        status=QueueStatus.WAITING.value,
        arrival_time=datetime.now(),
        estimated_wait_time=DEFAULT_ESTIMATED_WAIT_MINUTES,
    )
    db.add(item)
    return _save(item, db)


@router.get('', response_model=list[QueueItemResponse])
def list_queue(db: Session = Depends(get_db)):
    priority_rank = case(PRIORITY_RANK, value=QueueItem.priority, else_=0)

    try:
        items = db.query(QueueItem).order_by(
            priority_rank.desc(),
            QueueItem.arrival_time.asc(),
        ).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    now = datetime.now()
    return [to_response(item, now) for item in items]


@router.get('/stats', response_model=QueueStatsResponse)
def queue_stats(db: Session = Depends(get_db)):
    try:
        counts = dict(
            db.query(QueueItem.status, func.count(QueueItem.id)).group_by(QueueItem.status).all()
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return QueueStatsResponse(
        waiting=counts.get(QueueStatus.WAITING.value, 0),
        with_doctor=counts.get(QueueStatus.WITH_DOCTOR.value, 0),
        completed=counts.get(QueueStatus.COMPLETED.value, 0),
        total=sum(counts.values()),
    )


@router.get('/{item_id}', response_model=QueueItemResponse)
def get_queue_entry(item_id: str, db: Session = Depends(get_db)):
    return to_response(get_queue_item(item_id, db))


@router.patch('/{item_id}', response_model=QueueItemResponse)
def update_queue_entry(item_id: str, data: UpdateQueueItemRequest, db: Session = Depends(get_db)):
    item = get_queue_item(item_id, db)
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(item, field, value)
    return _save(item, db)


@router.patch('/{item_id}/status', response_model=QueueItemResponse)
def update_queue_status(
    item_id: str,
    new_status: QueueStatus = Body(..., embed=True, alias='status'),
    db: Session = Depends(get_db),
):
    item = get_queue_item(item_id, db)
    item.status = new_status.value

    if new_status == QueueStatus.WITH_DOCTOR:
        item.called_time = datetime.now()
    elif new_status == QueueStatus.COMPLETED:
        item.completed_time = datetime.now()

    return _save(item, db)


@router.patch('/{item_id}/priority', response_model=QueueItemResponse)
def update_queue_priority(
    item_id: str,
    priority: QueuePriority = Body(..., embed=True),
    db: Session = Depends(get_db),
):
    item = get_queue_item(item_id, db)
    item.priority = priority.value
    return _save(item, db)


@router.patch('/{item_id}/assign-doctor', response_model=QueueItemResponse)
def assign_doctor(
    item_id: str,
    doctor_id: str = Body(..., embed=True),
    db: Session = Depends(get_db),
):
    item = get_queue_item(item_id, db)
    get_active_doctor(doctor_id, db)
    item.assigned_doctor_id = doctor_id
    return _save(item, db)


@router.delete('/{item_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_from_queue(item_id: str, db: Session = Depends(get_db)):
    item = get_queue_item(item_id, db)

    try:
        db.delete(item)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
