"""Domain errors raised by the service layer.

Routers translate these into HTTP responses; the recurrence calculator never
raises them (an unknown frequency is a ``None`` result there).
"""

from __future__ import annotations


class MoneyflowError(Exception):
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(MoneyflowError):
    status_code = 404


class CategoryTypeMismatch(MoneyflowError):
    pass


class CategoryCycleError(MoneyflowError):
    pass


class CategoryInUseError(MoneyflowError):
    status_code = 409


class InvalidFrequencyError(MoneyflowError):
    pass
