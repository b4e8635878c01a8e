"""Pure scheduling rules: time normalization, overlap, slots and status moves."""

from datetime import date
from typing import Iterable, Iterator

from backend.models.appointment import AppointmentStatus
from backend.models.doctor import WEEKDAYS
from backend.scheduling.errors import InvalidStatusTransitionError

SLOT_INCREMENT_MINUTES = 30
MINUTES_PER_DAY = 24 * 60

TERMINAL_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
})

# Forward path only; cancelled and no_show are added for every non-terminal state below.
_FORWARD_TRANSITIONS = {
    AppointmentStatus.SCHEDULED: {AppointmentStatus.CONFIRMED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.IN_PROGRESS},
    AppointmentStatus.IN_PROGRESS: {AppointmentStatus.COMPLETED},
}

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    status: frozenset(
        _FORWARD_TRANSITIONS.get(status, set())
        | ({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW} if status not in TERMINAL_STATUSES else set())
    )
    for status in AppointmentStatus
}


def parse_clock(value: str) -> int:
    """Return minutes since midnight for an "HH:MM" or "HH:MM:SS" string."""
    parts = value.strip().split(':')
    if len(parts) < 2:
        raise ValueError(f'Invalid time of day: {value!r}')

    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 24 and 0 <= minutes < 60) or hours * 60 + minutes > MINUTES_PER_DAY:
        raise ValueError(f'Invalid time of day: {value!r}')

    return hours * 60 + minutes


def format_clock(total_minutes: int) -> str:
    hours, minutes = divmod(total_minutes, 60)
    return f'{hours:02d}:{minutes:02d}'


def normalize_clock(value: str) -> str:
    """Zero-pad and drop seconds, so "9:00:00" becomes "09:00"."""
    return format_clock(parse_clock(value))


def weekday_key(day: date) -> str:
    # date.weekday() counts from Monday; the template is keyed from Sunday.
    return WEEKDAYS[(day.weekday() + 1) % 7]


def intervals_conflict(start: str, end: str, existing_start: str, existing_end: str) -> bool:
    start, end = normalize_clock(start), normalize_clock(end)
    existing_start, existing_end = normalize_clock(existing_start), normalize_clock(existing_end)

    overlaps = start < existing_end and end > existing_start
    # Subsumed by the overlap test for well-formed intervals; it still decides
    # the outcome for zero-length or inverted ones.
    same_interval = start == existing_start and end == existing_end
    return overlaps or same_interval


def find_conflict(start: str, end: str, existing: Iterable):
    """Return the first appointment in ``existing`` that clashes, or None."""
    for appointment in existing:
        if intervals_conflict(start, end, appointment.start_time, appointment.end_time):
            return appointment
    return None


def iterate_slot_starts(window_start: str, window_end: str) -> Iterator[str]:
    current = parse_clock(window_start)
    end = parse_clock(window_end)

    while current < end:
        yield format_clock(current)
        current += SLOT_INCREMENT_MINUTES


def compute_free_slots(day_template: dict | None, booked: Iterable) -> list[str]:
    """Free 30-minute starts for one day of a doctor's template.

    A slot is removed only when a booking starts exactly on it. A slot that
    falls inside a longer booking stays listed.
    """
    if not day_template or not day_template.get('available'):
        return []

    booked_starts = {normalize_clock(appointment.start_time) for appointment in booked}
    return [
        slot
        for slot in iterate_slot_starts(day_template['start'], day_template['end'])
        if slot not in booked_starts
    ]


def validate_status_transition(current: str, target: str, strict: bool) -> AppointmentStatus:
    target_status = AppointmentStatus(target)
    if not strict:
        return target_status

    current_status = AppointmentStatus(current)
    if target_status == current_status:
        return target_status

    if target_status not in ALLOWED_TRANSITIONS[current_status]:
        raise InvalidStatusTransitionError(
            f'Cannot move an appointment from {current_status.value} to {target_status.value}.'
        )

    return target_status
