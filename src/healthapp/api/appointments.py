"""Appointment operations for patients and doctors."""

from __future__ import annotations

from typing import Any

from ..models.appointment import Appointment
from .client import ApiClient
from .endpoints import (
    APPOINTMENTS,
    DOCTOR_APPOINTMENTS,
    PATIENT_APPOINTMENTS,
    PATIENT_UPCOMING_APPOINTMENTS,
)
from .parsing import parse_items, unwrap


async def list_patient_appointments(client: ApiClient) -> list[Appointment]:
    """Fetch every appointment of the logged-in patient."""
    resp = await client.get(PATIENT_APPOINTMENTS)
    return parse_items(resp.json(), "appointments", Appointment)


async def list_upcoming_appointments(client: ApiClient) -> list[Appointment]:
    resp = await client.get(PATIENT_UPCOMING_APPOINTMENTS)
    return parse_items(resp.json(), "appointments", Appointment)


async def list_doctor_appointments(
    client: ApiClient, status: str | None = None, date: str | None = None
) -> list[Appointment]:
    """Fetch the logged-in doctor's appointments, optionally filtered."""
    params = {k: v for k, v in (("status", status), ("date", date)) if v}
    resp = await client.get(DOCTOR_APPOINTMENTS, params=params or None)
    return parse_items(resp.json(), "appointments", Appointment)


async def get_appointment(client: ApiClient, appointment_id: int | str) -> Appointment:
    """Fetch a single appointment.

    Raises :class:`httpx.HTTPStatusError` on non-2xx responses.
    """
    resp = await client.get(f"{PATIENT_APPOINTMENTS}/{appointment_id}")
    return Appointment.model_validate(unwrap(resp.json(), "appointment"))


async def create_appointment(client: ApiClient, payload: dict[str, Any]) -> Appointment:
    """Book an appointment.

    *payload* is sent as-is; the backend expects at least ``doctorId``,
    ``date`` and a time.
    """
    resp = await client.post(PATIENT_APPOINTMENTS, json=payload)
    return Appointment.model_validate(unwrap(resp.json(), "appointment"))


async def update_status(
    client: ApiClient, appointment_id: int | str, status: str
) -> Appointment | None:
    """Set an appointment's status (``confirmed``, ``cancelled``, ``completed``...).

    Returns the updated appointment, or ``None`` when the server answers
    without a body.
    """
    resp = await client.patch(f"{APPOINTMENTS}/{appointment_id}", json={"status": status})
    if not resp.content:
        return None
    return Appointment.model_validate(unwrap(resp.json(), "appointment"))
