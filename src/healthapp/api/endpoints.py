"""REST paths exposed by the HealthApp backend."""

AUTH_LOGIN = "/api/auth/login"
AUTH_REGISTER = "/api/auth/register"
AUTH_REFRESH_TOKEN = "/api/auth/refresh-token"
AUTH_LOGOUT = "/api/auth/logout"
AUTH_FORGOT_PASSWORD = "/api/auth/forgot-password"
AUTH_RESET_PASSWORD = "/api/auth/reset-password"
AUTH_VERIFY_TOKEN = "/api/auth/verify-token"
AUTH_CURRENT_USER = "/api/auth/current-user"
AUTH_CHANGE_PASSWORD = "/api/auth/change-password"

APPOINTMENTS = "/api/appointments"
PATIENT_APPOINTMENTS = "/api/patient/appointments"
PATIENT_UPCOMING_APPOINTMENTS = "/api/patient/appointments/upcoming"
PATIENT_MEDICAL_RECORDS = "/api/patient/medical-records"
PATIENT_HEALTH_SUMMARY = "/api/patient/health-summary"

DOCTOR_APPOINTMENTS = "/api/doctor/appointments"
DOCTOR_MEDICAL_RECORDS = "/api/doctor/medical-records"

USERS_PROFILE = "/api/users/profile"
USERS_DOCTORS = "/api/users/doctors"
USERS_PATIENTS = "/api/users/patients"

ADMIN = "/api/admin"

MESSAGES = "/api/messages"
MESSAGES_CONVERSATIONS = "/api/messages/conversations"

HEALTH_PATHS = ("/health", "/api/health")
