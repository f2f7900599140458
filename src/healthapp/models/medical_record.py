"""Pydantic v2 models for medical records and prescriptions."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict


class Medication(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    dosage: str | None = None
    frequency: str | None = None
    duration: str | None = None
    notes: str | None = None


class Prescription(BaseModel):
    """Medications issued as part of a record."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int | str | None = None
    medications: list[Medication] = []
    instructions: str | None = None
    startDate: str | None = None
    endDate: str | None = None
    status: Literal["active", "completed", "cancelled"] | None = None


class Attachment(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int | str | None = None
    type: str | None = None
    url: str
    name: str | None = None
    uploadedAt: str | None = None


class MedicalRecord(BaseModel):
    """A diagnosis entry written by a doctor for a patient."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int | str
    patientId: int | str | None = None
    doctorId: int | str | None = None
    date: str | None = None
    diagnosis: str | None = None
    prescription: Prescription | None = None
    notes: str | None = None
    attachments: list[Attachment] = []
    createdAt: str | None = None
    updatedAt: str | None = None
