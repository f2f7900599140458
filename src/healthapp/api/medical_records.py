"""Medical record operations."""

from __future__ import annotations

from typing import Any

from ..models.medical_record import MedicalRecord
from .client import ApiClient
from .endpoints import DOCTOR_MEDICAL_RECORDS, PATIENT_MEDICAL_RECORDS
from .parsing import parse_items, unwrap


async def list_patient_records(client: ApiClient) -> list[MedicalRecord]:
    """Fetch the logged-in patient's records."""
    resp = await client.get(PATIENT_MEDICAL_RECORDS)
    return parse_items(resp.json(), "records", MedicalRecord)


async def list_doctor_records(client: ApiClient) -> list[MedicalRecord]:
    """Fetch records written by the logged-in doctor."""
    resp = await client.get(DOCTOR_MEDICAL_RECORDS)
    return parse_items(resp.json(), "records", MedicalRecord)


async def get_record(client: ApiClient, record_id: int | str) -> MedicalRecord:
    resp = await client.get(f"{PATIENT_MEDICAL_RECORDS}/{record_id}")
    return MedicalRecord.model_validate(unwrap(resp.json(), "record"))


async def create_record(client: ApiClient, payload: dict[str, Any]) -> MedicalRecord:
    """Create a record for a patient (doctor accounts only)."""
    resp = await client.post(DOCTOR_MEDICAL_RECORDS, json=payload)
    return MedicalRecord.model_validate(unwrap(resp.json(), "record"))
