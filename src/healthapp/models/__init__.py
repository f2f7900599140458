"""Re-export all HealthApp data models for convenient access."""

from healthapp.models.appointment import Appointment
from healthapp.models.medical_record import (
    Attachment,
    MedicalRecord,
    Medication,
    Prescription,
)
from healthapp.models.message import Conversation, Message, Participant
from healthapp.models.user import (
    AuthResponse,
    AuthState,
    Credentials,
    LoginCredentials,
    PasswordResetResponse,
    RefreshResponse,
    RegisterCredentials,
    User,
    UserRole,
)

__all__ = [
    # Appointment models
    "Appointment",
    # Medical record models
    "Attachment",
    "MedicalRecord",
    "Medication",
    "Prescription",
    # Messaging models
    "Conversation",
    "Message",
    "Participant",
    # User / auth models
    "AuthResponse",
    "AuthState",
    "Credentials",
    "LoginCredentials",
    "PasswordResetResponse",
    "RefreshResponse",
    "RegisterCredentials",
    "User",
    "UserRole",
]
