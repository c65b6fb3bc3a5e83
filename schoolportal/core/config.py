import os



def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: str) -> list[str]:
    raw = value if value is not None else default
    return [item.strip() for item in raw.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

SCHOOL_NAME = os.getenv("SCHOOL_NAME", "Esiphukwini Junior Primary School")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Admin applicants are accepted at registration time while this is on.
AUTO_ACCEPT_ADMIN_REGISTRATIONS = _get_bool(os.getenv("AUTO_ACCEPT_ADMIN_REGISTRATIONS"), default=True)
REQUIRE_EMAIL_CONFIRMATION = _get_bool(os.getenv("REQUIRE_EMAIL_CONFIRMATION"), default=False)

STORAGE_ROOT = os.getenv("STORAGE_ROOT", "./storage")
STORAGE_PUBLIC_BASE_URL = os.getenv("STORAGE_PUBLIC_BASE_URL", "http://localhost:8000/storage")
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "5"))
ALLOWED_UPLOAD_EXTENSIONS = _get_list(os.getenv("ALLOWED_UPLOAD_EXTENSIONS"), ".pdf,.jpg,.jpeg,.png")

RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
REGISTRATION_EMAIL_FROM = os.getenv("REGISTRATION_EMAIL_FROM", "Esiphukwini JP School <onboarding@resend.dev>")

DEFAULT_CLASS_CAPACITY = int(os.getenv("DEFAULT_CLASS_CAPACITY", "40"))

FRONTEND_ORIGINS = _get_list(os.getenv("FRONTEND_ORIGINS"), "http://localhost:5173")

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if MAX_UPLOAD_MB <= 0:
        raise RuntimeError("MAX_UPLOAD_MB must be positive.")
