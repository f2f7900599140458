"""Pydantic v2 models for appointments."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Appointment(BaseModel):
    """A scheduled visit between a patient and a doctor.

    Patient and doctor listings return slightly different shapes (names
    flattened in, nested user objects, ...); unknown fields are kept.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int | str
    patientId: int | str | None = None
    doctorId: int | str | None = None
    date: str | None = None
    time: str | None = None
    startTime: str | None = None
    endTime: str | None = None
    type: str | None = None
    status: str | None = None
    reason: str | None = None
    notes: str | None = None
    patientName: str | None = None
    doctorName: str | None = None
    createdAt: str | None = None
    updatedAt: str | None = None

    @property
    def when(self) -> str:
        """Human readable date/time, whichever parts the server sent."""
        parts = [p for p in (self.date, self.startTime or self.time) if p]
        return " ".join(parts)
