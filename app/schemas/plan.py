"""
Plan document schemas

The plan is stored as JSON on the event and on each snapshot. These models
are the structural contract for reading and writing it.
"""

import enum
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator


class TableShape(str, enum.Enum):
    ROUND = "round"
    RECTANGULAR = "rectangular"
    LONG = "long"


class PlanModel(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=True)


class SeatAssignment(PlanModel):
    seat_no: int = Field(..., ge=1)
    guest_id: Optional[str] = None


class GuestData(PlanModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=150)
    note: Optional[str] = None
    tag: Optional[str] = None
    rsvp: Optional[str] = None


class TableData(PlanModel):
    id: str = Field(..., min_length=1)
    shape: TableShape = TableShape.ROUND
    capacity: int = Field(..., gt=0)
    label: Optional[str] = None
    start_index: int = Field(1, ge=1)
    head_seat: int = Field(1, ge=1)
    seats: List[SeatAssignment] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_seats(self):
        if self.head_seat > self.capacity:
            raise ValueError(f"head_seat {self.head_seat} exceeds capacity {self.capacity}")
        numbers = [seat.seat_no for seat in self.seats]
        if any(n > self.capacity for n in numbers):
            raise ValueError(f"Table {self.id} has a seat beyond capacity {self.capacity}")
        if len(numbers) != len(set(numbers)):
            raise ValueError(f"Table {self.id} has duplicate seat numbers")
        return self


class PlanSettings(PlanModel):
    color_palette: str = "default"


class PlanData(PlanModel):
    tables: List[TableData] = Field(default_factory=list)
    guests: List[GuestData] = Field(default_factory=list)
    settings: PlanSettings = Field(default_factory=PlanSettings)

    @model_validator(mode="after")
    def check_references(self):
        table_ids = [table.id for table in self.tables]
        if len(table_ids) != len(set(table_ids)):
            raise ValueError("Table ids must be unique")

        guest_ids = {guest.id for guest in self.guests}
        if len(guest_ids) != len(self.guests):
            raise ValueError("Guest ids must be unique")

        seated = [
            seat.guest_id
            for table in self.tables
            for seat in table.seats
            if seat.guest_id is not None
        ]
        unknown = set(seated) - guest_ids
        if unknown:
            raise ValueError(f"Seats refer to unknown guests: {sorted(unknown)}")
        if len(seated) != len(set(seated)):
            raise ValueError("A guest can occupy only one seat")
        return self

    def find_table(self, table_id: str) -> Optional[TableData]:
        return next((t for t in self.tables if t.id == table_id), None)

    def find_guest(self, guest_id: str) -> Optional[GuestData]:
        return next((g for g in self.guests if g.id == guest_id), None)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


# Operation payloads

class SeatRef(PlanModel):
    table_id: str
    seat_no: int = Field(..., ge=1)


class TableCreate(PlanModel):
    id: Optional[str] = None
    shape: TableShape = TableShape.ROUND
    capacity: int = Field(..., gt=0)
    label: Optional[str] = None
    start_index: int = Field(1, ge=1)
    head_seat: int = Field(1, ge=1)


class TablePatch(PlanModel):
    shape: Optional[TableShape] = None
    capacity: Optional[int] = Field(None, gt=0)
    label: Optional[str] = None
    start_index: Optional[int] = Field(None, ge=1)
    head_seat: Optional[int] = Field(None, ge=1)


class GuestCreate(PlanModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=150)
    note: Optional[str] = None
    tag: Optional[str] = None
    rsvp: Optional[str] = None


class GuestPatch(PlanModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    note: Optional[str] = None
    tag: Optional[str] = None
    rsvp: Optional[str] = None


class AddTableOp(PlanModel):
    op: Literal["add_table"]
    table: TableCreate


class UpdateTableOp(PlanModel):
    op: Literal["update_table"]
    id: str
    patch: TablePatch


class RemoveTableOp(PlanModel):
    op: Literal["remove_table"]
    id: str


class AddGuestOp(PlanModel):
    op: Literal["add_guest"]
    guest: GuestCreate


class UpdateGuestOp(PlanModel):
    op: Literal["update_guest"]
    id: str
    patch: GuestPatch


class RemoveGuestOp(PlanModel):
    op: Literal["remove_guest"]
    id: str


class AssignGuestSeatOp(PlanModel):
    op: Literal["assign_guest_seat"]
    guest_id: str
    table_id: str
    seat_no: Optional[int] = Field(None, ge=1)


class MoveGuestTableOp(PlanModel):
    op: Literal["move_guest_table"]
    guest_id: str
    to_table_id: str
    seat_no: Optional[int] = Field(None, ge=1)


class SwapSeatsOp(PlanModel):
    op: Literal["swap_seats"]
    a: SeatRef
    b: SeatRef


class ChangeSeatOrderOp(PlanModel):
    op: Literal["change_seat_order_settings"]
    table_id: str
    start_index: int = Field(..., ge=1)
    head_seat: int = Field(..., ge=1)
    # Only clockwise numbering is supported
    direction: Literal["clockwise"] = "clockwise"


PlanOperation = Annotated[
    Union[
        AddTableOp,
        UpdateTableOp,
        RemoveTableOp,
        AddGuestOp,
        UpdateGuestOp,
        RemoveGuestOp,
        AssignGuestSeatOp,
        MoveGuestTableOp,
        SwapSeatsOp,
        ChangeSeatOrderOp,
    ],
    Field(discriminator="op"),
]


class BulkPlanOps(BaseModel):
    version: Optional[int] = Field(None, ge=0, description="Expected autosave_version")
    ops: List[PlanOperation] = Field(..., min_length=1)
