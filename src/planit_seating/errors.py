"""Exception hierarchy for seating operations and backend calls."""
from __future__ import annotations

from typing import List, Optional


class SeatingError(Exception):
    """Base class for every error raised by planit_seating."""


class ValidationError(SeatingError):
    """A manual edit was rejected. Never retried, never corrected silently."""


class CapacityExceeded(ValidationError):
    def __init__(self, table_name: str, occupancy: int, size: int, capacity: int) -> None:
        super().__init__(
            f"{table_name} cannot take {size} more (occupancy {occupancy}/{capacity})"
        )
        self.table_name = table_name
        self.occupancy = occupancy
        self.size = size
        self.capacity = capacity


class CapacityTooSmall(ValidationError):
    def __init__(self, table_name: str, occupancy: int, capacity: int) -> None:
        super().__init__(
            f"Capacity {capacity} for {table_name} is below current occupancy {occupancy}"
        )
        self.table_name = table_name
        self.occupancy = occupancy
        self.capacity = capacity


class InvalidCapacityRange(ValidationError):
    def __init__(self, capacity: int, minimum: int, maximum: int) -> None:
        super().__init__(f"Capacity {capacity} outside allowed range {minimum}-{maximum}")
        self.capacity = capacity
        self.minimum = minimum
        self.maximum = maximum


class AffinityMismatch(ValidationError):
    """A gender-affinity table was asked to hold the other partition."""


class InvalidArrangement(ValidationError):
    def __init__(self, issues: List[object]) -> None:
        super().__init__(f"Arrangement rejected with {len(issues)} issue(s)")
        self.issues = issues


class TableNotFound(SeatingError):
    def __init__(self, table_id: str) -> None:
        super().__init__(f"Unknown table: {table_id}")
        self.table_id = table_id


class UnknownGuest(SeatingError):
    def __init__(self, guest_id: str) -> None:
        super().__init__(f"Guest is not a seatable entity: {guest_id}")
        self.guest_id = guest_id


class OptionNotFound(SeatingError):
    def __init__(self, option_id: str) -> None:
        super().__init__(f"No pending sync option with id {option_id}")
        self.option_id = option_id


class ServiceError(SeatingError):
    """Failure talking to an external collaborator."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientServiceError(ServiceError):
    """Network or server failure; retried only by the next poll or the user."""


class AuthorizationError(ServiceError):
    """Expired or missing credentials. Fatal to the session."""
