from typing import Tuple

from pydantic import BaseModel, ConfigDict


class Desk(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    room: int
    number: int
    label: str


DEFAULT_DESKS: Tuple[Desk, ...] = tuple(
    Desk(
        id=f"room{room}-desk{slot}",
        room=room,
        number=(room - 1) * 4 + slot,
        label=f"Room {room}, Desk {(room - 1) * 4 + slot}",
    )
    for room in (1, 2)
    for slot in (1, 2, 3, 4)
)
