# app/services/errors.py
from __future__ import annotations


class ValidationFailure(ValueError):
    """
    Input rejected before anything was written (unknown patient/therapist,
    duplicate appointment, ...).
    """


class DuplicateAppointment(ValidationFailure):
    """
    An appointment with the same patient, therapist, date and time exists.
    """


class DuplicateRecurrence(ValidationFailure):
    """
    The recurrence id is already claimed by another series.
    """

    def __init__(self, recurrence_id: str) -> None:
        super().__init__(f"Recurrence with id={recurrence_id} already exists.")
        self.recurrence_id = recurrence_id


class PersistenceFailure(RuntimeError):
    """
    A database error or timeout interrupted a write batch. The in-flight
    transaction has been rolled back when this is raised.
    """


class RecurrenceNotFound(LookupError):
    """
    No appointment carries the requested recurrence id.
    """

    def __init__(self, recurrence_id: str) -> None:
        super().__init__(f"Recurrence with id={recurrence_id} not found.")
        self.recurrence_id = recurrence_id


class AppointmentNotFound(LookupError):
    def __init__(self, appointment_id: int) -> None:
        super().__init__(f"Appointment with id={appointment_id} not found.")
        self.appointment_id = appointment_id


class TransactionNotFound(LookupError):
    def __init__(self, transaction_id: int) -> None:
        super().__init__(f"Transaction with id={transaction_id} not found.")
        self.transaction_id = transaction_id
