from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from coworking.context import StoreContext, get_store
from coworking.schemas.waiting_list import (
    WaitingListEntry,
    WaitingListEntryCreate,
    WaitingListEntryUpdate,
)
from coworking.utils.http_errors import store_errors
from coworking.waiting_list import WaitingListStore


router = APIRouter(
    prefix="/waiting-list",
    tags=["waiting list"],
)


def get_waiting_list(store: StoreContext = Depends(get_store)) -> WaitingListStore:
    if store.waiting_list is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Waiting list unavailable")
    return store.waiting_list


@router.get("/", response_model=List[WaitingListEntry])
def get_entries(waiting_list: WaitingListStore = Depends(get_waiting_list)):
    """
    Retrieve the waiting list, newest first.
    """
    with store_errors():
        return waiting_list.get_all_entries()


@router.post("/", response_model=WaitingListEntry, status_code=status.HTTP_201_CREATED)
def add_entry(entry: WaitingListEntryCreate, waiting_list: WaitingListStore = Depends(get_waiting_list)):
    """
    Add someone to the waiting list.

    - **name**: Who is waiting.
    - **preferred_dates**: Free text describing when they need a desk.
    - **contact_info** / **notes**: (Optional) How to reach them, anything else.
    """
    with store_errors():
        return waiting_list.add_entry(entry)


@router.patch("/{entry_id}", response_model=WaitingListEntry)
def update_entry(
    entry_id: str,
    changes: WaitingListEntryUpdate,
    waiting_list: WaitingListStore = Depends(get_waiting_list),
):
    with store_errors():
        entry = waiting_list.update_entry(entry_id, changes)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Waiting list entry not found")
    return entry


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_entry(entry_id: str, waiting_list: WaitingListStore = Depends(get_waiting_list)):
    with store_errors():
        waiting_list.remove_entry(entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
def clear_entries(waiting_list: WaitingListStore = Depends(get_waiting_list)):
    with store_errors():
        waiting_list.clear_all()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
