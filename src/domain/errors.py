"""Domain errors raised by the reservation core.

All of them derive from ``ValueError`` so callers that only care about
"the request was refused" can keep catching that. The HTTP layer maps each
class to a status code.
"""
from typing import Optional


class DomainError(ValueError):
    entity: Optional[str] = None

    def __init__(self, message: str, *, entity: Optional[str] = None, rule: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity = entity or self.entity
        self.rule = rule

    def to_dict(self) -> dict:
        payload = {"error": type(self).__name__, "message": self.message}
        if self.entity:
            payload["entity"] = self.entity
        if self.rule:
            payload["rule"] = self.rule
        return payload


class NotFoundError(DomainError):
    pass


class ForbiddenError(DomainError):
    pass


class ConflictError(DomainError):
    def __init__(
        self,
        message: str,
        *,
        dimension: Optional[str] = None,
        conflicting_id: Optional[int] = None,
        entity: Optional[str] = None,
        rule: Optional[str] = None,
    ):
        super().__init__(message, entity=entity, rule=rule)
        self.dimension = dimension
        self.conflicting_id = conflicting_id

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.dimension:
            payload["dimension"] = self.dimension
        if self.conflicting_id is not None:
            payload["conflicting_id"] = self.conflicting_id
        return payload


class InvalidStateError(DomainError):
    pass


class InvalidTransitionError(InvalidStateError):
    def __init__(self, current, target):
        super().__init__(
            f"Cannot change reservation status from {current.value} to {target.value}",
            entity="reservation",
            rule="status_transition",
        )
        self.current = current
        self.target = target


class UnavailableError(DomainError):
    """Storage failure. Nothing was committed; the whole operation may be retried."""


class SerializationFailure(UnavailableError):
    """The store aborted the transaction because of a concurrent writer."""
