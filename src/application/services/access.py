from src.domain.common import UserRole
from src.domain.entities import Caller, ParkingLot
from src.domain.errors import ForbiddenError


def ensure_lot_operator(caller: Caller, lot: ParkingLot) -> None:
    """Admins, or estacionamento staff of the company owning ``lot``."""
    if caller.is_admin:
        return
    if caller.role == UserRole.ESTACIONAMENTO and caller.company_id is not None and caller.company_id == lot.company_id:
        return
    raise ForbiddenError(
        f"Caller has no access to parking lot {lot.id}", entity="parking_lot", rule="lot_operator"
    )


def ensure_company_member(caller: Caller, company_id: int, entity: str) -> None:
    if caller.is_admin or caller.company_id == company_id:
        return
    raise ForbiddenError(f"The {entity} belongs to another company", entity=entity, rule="ownership")
