from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from ..schemas import ReminderOut, StatisticsOut
from ..service import TodoService
from .todos import get_service

router = APIRouter(
    prefix="/api/v1",
    tags=["stats"],
)


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=StatisticsOut,
    summary="Statistics",
    description="Total, completed, active and overdue counts plus completion rate over all todos.",
)
def get_statistics(service: TodoService = Depends(get_service)) -> StatisticsOut:
    return StatisticsOut.from_stats(service.statistics())


# PUBLIC_INTERFACE
@router.get(
    "/reminders",
    response_model=List[ReminderOut],
    summary="Pending Reminders",
    description="Reminders currently scheduled, ordered by fire time.",
)
def list_reminders(service: TodoService = Depends(get_service)) -> List[ReminderOut]:
    return [ReminderOut.from_reminder(r) for r in service.pending_reminders()]
