from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from coworking.context import StoreContext, get_store
from coworking.schemas.booking import Booking
from coworking.schemas.desk import Desk
from coworking.utils.http_errors import store_errors


router = APIRouter(
    prefix="/desks",
    tags=["desks"],
)


def _find_desk(store: StoreContext, desk_id: str) -> Desk:
    for desk in store.desks:
        if desk.id == desk_id:
            return desk
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Desk not found")


@router.get("/", response_model=List[Desk])
def get_desks(store: StoreContext = Depends(get_store)):
    """
    Retrieve the desk layout.
    """
    return list(store.desks)


@router.get("/{desk_id}", response_model=Desk)
def get_desk(desk_id: str, store: StoreContext = Depends(get_store)):
    """
    Retrieve a specific desk by ID.
    """
    return _find_desk(store, desk_id)


@router.get("/{desk_id}/bookings", response_model=List[Booking])
async def get_desk_bookings(
    desk_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    store: StoreContext = Depends(get_store),
):
    """
    Retrieve the bookings of one desk, oldest first.

    - **start_date** / **end_date**: (Optional) Limit the history to a range of days.
    """
    _find_desk(store, desk_id)
    with store_errors():
        return await store.get_bookings_for_desk(desk_id, start_date, end_date)
