"""
Pure plan transformations

Nothing here touches storage. Functions take a PlanData, mutate it in place
and raise the engine's named exceptions; the services persist the result
through the version counter.
"""

import hashlib
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import (
    NotFoundError,
    SeatOccupiedError,
    TableFullError,
    ValidationError,
)
from app.models.audit_log import AuditAction
from app.schemas.plan import (
    AddGuestOp,
    AddTableOp,
    AssignGuestSeatOp,
    ChangeSeatOrderOp,
    GuestData,
    MoveGuestTableOp,
    PlanData,
    RemoveGuestOp,
    RemoveTableOp,
    SeatAssignment,
    SwapSeatsOp,
    TableData,
    UpdateGuestOp,
    UpdateTableOp,
)


@dataclass
class SeatPlacement:
    table_id: str
    seat_no: int
    previous: Optional[Tuple[str, int]] = None


@dataclass
class OpOutcome:
    """Audit material produced by applying one operation"""
    action: AuditAction
    details: Dict[str, Any] = field(default_factory=dict)
    destructive: bool = False


def load_plan(raw: Optional[dict]) -> PlanData:
    return PlanData.model_validate(raw or {})


def revalidate(plan: PlanData) -> PlanData:
    """Re-run the structural checks after in-place edits"""
    try:
        return PlanData.model_validate(plan.to_json())
    except PydanticValidationError as e:
        first = e.errors()[0]
        raise ValidationError(f"Resulting plan is invalid: {first['msg']}")


def stable_seat_hash(event_id: Any, guest_id: str) -> int:
    """Content-based hash of (event, guest); identical across processes and runs"""
    digest = hashlib.sha256(f"{event_id}:{guest_id}".encode()).digest()[:8]
    return int.from_bytes(digest, byteorder="big", signed=False)


def find_guest_seat(plan: PlanData, guest_id: str) -> Optional[Tuple[TableData, SeatAssignment]]:
    for table in plan.tables:
        for seat in table.seats:
            if seat.guest_id == guest_id:
                return table, seat
    return None


def free_seats(table: TableData, guest_id: Optional[str] = None) -> List[int]:
    """
    Sorted seat numbers not occupied by another guest.
    A seat already held by ``guest_id`` counts as free.
    """
    taken = {
        seat.seat_no
        for seat in table.seats
        if seat.guest_id is not None and seat.guest_id != guest_id
    }
    return [n for n in range(1, table.capacity + 1) if n not in taken]


def select_seat(event_id: Any, guest_id: str, table: TableData) -> int:
    candidates = free_seats(table, guest_id)
    if not candidates:
        raise TableFullError(table.id)
    return candidates[stable_seat_hash(event_id, guest_id) % len(candidates)]


def vacate_guest(plan: PlanData, guest_id: str) -> Optional[Tuple[str, int]]:
    """Remove the guest from every seat it occupies; returns the last one found"""
    previous = None
    for table in plan.tables:
        for seat in table.seats:
            if seat.guest_id == guest_id:
                previous = (table.id, seat.seat_no)
        table.seats = [s for s in table.seats if s.guest_id != guest_id]
    return previous


def _put_guest(table: TableData, seat_no: int, guest_id: str):
    table.seats = [s for s in table.seats if s.seat_no != seat_no]
    table.seats.append(SeatAssignment(seat_no=seat_no, guest_id=guest_id))
    table.seats.sort(key=lambda s: s.seat_no)


def _require_table(plan: PlanData, table_id: str) -> TableData:
    table = plan.find_table(table_id)
    if table is None:
        raise NotFoundError("Table", table_id)
    return table


def _require_guest(plan: PlanData, guest_id: str) -> GuestData:
    guest = plan.find_guest(guest_id)
    if guest is None:
        raise NotFoundError("Guest", guest_id)
    return guest


def assign_guest(
    plan: PlanData,
    event_id: Any,
    guest_id: str,
    table_id: str,
    seat_no: Optional[int] = None,
) -> SeatPlacement:
    """
    Seat a guest at a table. Without an explicit seat_no the seat is chosen
    deterministically from the table's free seats.
    """
    _require_guest(plan, guest_id)
    table = _require_table(plan, table_id)

    if seat_no is None:
        chosen = select_seat(event_id, guest_id, table)
    else:
        if seat_no > table.capacity:
            raise ValidationError(
                f"seat_no {seat_no} exceeds capacity {table.capacity}", field="seat_no"
            )
        occupant = next(
            (s.guest_id for s in table.seats if s.seat_no == seat_no and s.guest_id), None
        )
        if occupant is not None and occupant != guest_id:
            raise SeatOccupiedError(table.id, seat_no, occupant)
        chosen = seat_no

    previous = vacate_guest(plan, guest_id)
    _put_guest(table, chosen, guest_id)
    return SeatPlacement(table_id=table.id, seat_no=chosen, previous=previous)


def swap_seats(plan: PlanData, a_table_id: str, a_seat: int, b_table_id: str, b_seat: int) -> Dict[str, Any]:
    table_a = _require_table(plan, a_table_id)
    table_b = _require_table(plan, b_table_id)
    for table, seat_no in ((table_a, a_seat), (table_b, b_seat)):
        if seat_no > table.capacity:
            raise ValidationError(
                f"seat_no {seat_no} exceeds capacity {table.capacity}", field="seat_no"
            )

    guest_a = next((s.guest_id for s in table_a.seats if s.seat_no == a_seat), None)
    guest_b = next((s.guest_id for s in table_b.seats if s.seat_no == b_seat), None)

    table_a.seats = [s for s in table_a.seats if s.seat_no != a_seat]
    table_b.seats = [s for s in table_b.seats if s.seat_no != b_seat]
    if guest_b:
        _put_guest(table_a, a_seat, guest_b)
    if guest_a:
        _put_guest(table_b, b_seat, guest_a)

    return {
        "a": {"table_id": a_table_id, "seat_no": a_seat, "guest_id": guest_b},
        "b": {"table_id": b_table_id, "seat_no": b_seat, "guest_id": guest_a},
    }


def summarize_diff(previous: Optional[PlanData], current: PlanData) -> Dict[str, int]:
    """Counts of what changed between two plans, for snapshot listings"""
    previous = previous or PlanData()

    def seating(plan: PlanData) -> Dict[str, Tuple[str, int]]:
        return {
            seat.guest_id: (table.id, seat.seat_no)
            for table in plan.tables
            for seat in table.seats
            if seat.guest_id
        }

    old_tables = {t.id for t in previous.tables}
    new_tables = {t.id for t in current.tables}
    old_guests = {g.id for g in previous.guests}
    new_guests = {g.id for g in current.guests}
    old_seating = seating(previous)
    new_seating = seating(current)

    return {
        "tables_added": len(new_tables - old_tables),
        "tables_removed": len(old_tables - new_tables),
        "guests_added": len(new_guests - old_guests),
        "guests_removed": len(old_guests - new_guests),
        "seats_changed": sum(
            1
            for guest_id in set(old_seating) | set(new_seating)
            if old_seating.get(guest_id) != new_seating.get(guest_id)
        ),
    }


def apply_operation(plan: PlanData, event_id: Any, op) -> OpOutcome:
    """Apply a single plan operation in place"""
    if isinstance(op, AddTableOp):
        data = op.table.model_dump()
        data["id"] = data["id"] or str(uuid.uuid4())
        if plan.find_table(data["id"]) is not None:
            raise ValidationError(f"Table {data['id']} already exists", field="table.id")
        try:
            table = TableData(**data, seats=[])
        except PydanticValidationError as e:
            raise ValidationError(e.errors()[0]["msg"], field="table")
        plan.tables.append(table)
        return OpOutcome(AuditAction.TABLE_CREATE, {"table_id": table.id})

    if isinstance(op, UpdateTableOp):
        table = _require_table(plan, op.id)
        patch = op.patch.model_dump(exclude_unset=True)
        capacity = patch.get("capacity", table.capacity)
        overflow = [s.seat_no for s in table.seats if s.guest_id and s.seat_no > capacity]
        if overflow:
            raise ValidationError(
                f"Capacity {capacity} would drop occupied seats {overflow}", field="capacity"
            )
        for key, value in patch.items():
            setattr(table, key, value.value if hasattr(value, "value") else value)
        table.seats = [s for s in table.seats if s.seat_no <= capacity]
        return OpOutcome(AuditAction.TABLE_UPDATE, {"table_id": table.id, "patch": list(patch)})

    if isinstance(op, RemoveTableOp):
        table = _require_table(plan, op.id)
        unseated = [s.guest_id for s in table.seats if s.guest_id]
        plan.tables = [t for t in plan.tables if t.id != op.id]
        return OpOutcome(
            AuditAction.TABLE_DELETE,
            {"table_id": op.id, "unseated_guests": unseated},
            destructive=True,
        )

    if isinstance(op, AddGuestOp):
        data = op.guest.model_dump()
        data["id"] = data["id"] or str(uuid.uuid4())
        if plan.find_guest(data["id"]) is not None:
            raise ValidationError(f"Guest {data['id']} already exists", field="guest.id")
        plan.guests.append(GuestData(**data))
        return OpOutcome(AuditAction.GUEST_ADD, {"guest_id": data["id"]})

    if isinstance(op, UpdateGuestOp):
        guest = _require_guest(plan, op.id)
        patch = op.patch.model_dump(exclude_unset=True)
        for key, value in patch.items():
            setattr(guest, key, value)
        return OpOutcome(AuditAction.GUEST_EDIT, {"guest_id": guest.id, "patch": list(patch)})

    if isinstance(op, RemoveGuestOp):
        _require_guest(plan, op.id)
        previous = vacate_guest(plan, op.id)
        plan.guests = [g for g in plan.guests if g.id != op.id]
        details = {"guest_id": op.id}
        if previous:
            details["previous_seat"] = {"table_id": previous[0], "seat_no": previous[1]}
        return OpOutcome(AuditAction.GUEST_DELETE, details)

    if isinstance(op, (AssignGuestSeatOp, MoveGuestTableOp)):
        table_id = op.table_id if isinstance(op, AssignGuestSeatOp) else op.to_table_id
        placement = assign_guest(plan, event_id, op.guest_id, table_id, op.seat_no)
        return OpOutcome(AuditAction.SEAT_ASSIGNED, placement_details(op.guest_id, placement))

    if isinstance(op, SwapSeatsOp):
        details = swap_seats(plan, op.a.table_id, op.a.seat_no, op.b.table_id, op.b.seat_no)
        return OpOutcome(AuditAction.SEAT_SWAP, details)

    if isinstance(op, ChangeSeatOrderOp):
        table = _require_table(plan, op.table_id)
        if op.head_seat > table.capacity:
            raise ValidationError(
                f"head_seat {op.head_seat} exceeds capacity {table.capacity}", field="head_seat"
            )
        table.start_index = op.start_index
        table.head_seat = op.head_seat
        return OpOutcome(
            AuditAction.SEAT_ORDER_CHANGED,
            {"table_id": table.id, "start_index": op.start_index, "head_seat": op.head_seat},
        )

    raise ValidationError(f"Unsupported operation {getattr(op, 'op', op)!r}", field="op")


def placement_details(guest_id: str, placement: SeatPlacement) -> Dict[str, Any]:
    details = {
        "guest_id": guest_id,
        "table_id": placement.table_id,
        "seat_no": placement.seat_no,
    }
    if placement.previous:
        details["previous_seat"] = {
            "table_id": placement.previous[0],
            "seat_no": placement.previous[1],
        }
    return details
