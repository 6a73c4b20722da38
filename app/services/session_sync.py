# app/services/session_sync.py
from __future__ import annotations

from app.models.appointment import Appointment
from app.models.therapy_session import TherapySession
from app.schemas.appointment import AppointmentStatus, AppointmentType
from app.schemas.therapy_session import PaymentStatus, SessionType

_SESSION_TYPE_BY_APPOINTMENT_TYPE = {
    AppointmentType.SESSION.value: SessionType.TREATMENT,
    AppointmentType.PARENTAL_GUIDANCE.value: SessionType.GUIDANCE,
    AppointmentType.SCHOOL_VISIT.value: SessionType.SCHOOL_VISIT,
    AppointmentType.SUPERVISION.value: SessionType.SUPERVISION,
}


def session_type_for(appointment_type: str) -> SessionType:
    """
    Map an appointment type onto the session type used for billing.
    Unknown or "Other" appointments are billed as treatment.
    """
    return _SESSION_TYPE_BY_APPOINTMENT_TYPE.get(
        str(appointment_type), SessionType.TREATMENT
    )


def payment_status_for(
    appointment_status: str,
    current: str | None = None,
) -> PaymentStatus:
    """
    Derive the payment status of a session from its appointment status.

    Cancelled appointments cancel the charge. Any other status means the
    charge is due, except that a session already marked Paid stays Paid.
    """
    if appointment_status == AppointmentStatus.CANCELLED.value:
        return PaymentStatus.CANCELLED
    if current == PaymentStatus.PAID.value:
        return PaymentStatus.PAID
    return PaymentStatus.PENDING


def normalize_status_flags(appointment: Appointment) -> Appointment:
    """
    Enforce the cancelled-status invariant on an appointment about to be written:
    a cancelled appointment neither occurred nor was missed.
    """
    if appointment.status == AppointmentStatus.CANCELLED.value:
        appointment.session_occurred = False
        appointment.missed = False
    return appointment


def build_session(appointment: Appointment) -> TherapySession:
    """
    Derive the session record of a freshly flushed appointment.
    """
    if appointment.id is None:
        raise ValueError("appointment must be flushed before deriving its session")

    return TherapySession(
        appointment_id=appointment.id,
        therapist_id=appointment.therapist_id,
        patient_id=appointment.patient_id,
        type=session_type_for(appointment.type).value,
        value=appointment.value,
        payment_status=payment_status_for(appointment.status).value,
    )


def mirror_session(session: TherapySession, appointment: Appointment) -> TherapySession:
    """
    Update a linked session in place so its billing fields follow the appointment.
    """
    session.therapist_id = appointment.therapist_id
    session.patient_id = appointment.patient_id
    session.type = session_type_for(appointment.type).value
    session.value = appointment.value
    session.payment_status = payment_status_for(
        appointment.status, current=session.payment_status
    ).value
    return session
