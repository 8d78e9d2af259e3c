from datetime import datetime
from typing import Optional

from src.application.queries import VEHICLE, DRIVER, SPACE, active_in_dimension
from src.application.repositories import AbstractUnitOfWork
from src.domain.errors import ConflictError
from src.domain.intervals import first_overlapping


async def ensure_no_overlap(
    uow: AbstractUnitOfWork,
    vehicle_id: int,
    driver_id: int,
    space_id: Optional[int],
    start_time: datetime,
    end_time: datetime,
    exclude_id: Optional[int] = None,
) -> None:
    """Refuse ``[start_time, end_time)`` if an active reservation already holds the vehicle, driver or space.

    Dimensions are checked in that order and the first clash wins.
    """
    for dimension, key in ((VEHICLE, vehicle_id), (DRIVER, driver_id), (SPACE, space_id)):
        if key is None:
            continue
        candidates = await uow.reservations.find(
            active_in_dimension(dimension, key, start_time, end_time, exclude_id)
        )
        clash = first_overlapping(start_time, end_time, candidates)
        if clash is not None:
            raise ConflictError(
                f"The {dimension} already has reservation {clash.id} "
                f"from {clash.start_time.isoformat()} to {clash.end_time.isoformat()}",
                dimension=dimension,
                conflicting_id=clash.id,
                entity="reservation",
                rule="overlap",
            )
