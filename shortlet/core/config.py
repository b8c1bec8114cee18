from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_HOSTS = {"your-api-domain.com", "example.invalid"}


def _validate_public_http_url(
    value: str,
    field_name: str,
    *,
    reject_placeholders: bool,
) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"{field_name} must be an absolute http(s) URL.")

    host = (parsed.hostname or "").lower()
    if reject_placeholders and host in PLACEHOLDER_HOSTS:
        raise ValueError(
            f"{field_name} points to placeholder host '{host}'. Set a real backend URL."
        )


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "shortlet-web"
    log_level: str = "INFO"

    # Backend REST API
    backend_api_url: str = Field("http://shortletback.vercel.app", env="BACKEND_API_URL")
    backend_timeout_seconds: float = 15.0

    # Bearer tokens are issued by the backend; without a secret they are read unverified.
    jwt_secret: str | None = Field(None, env="JWT_SECRET")
    algorithm: str = "HS256"

    # Client routes used as workflow exits
    login_path: str = "/login"
    bookings_path: str = "/dashboard/bookings"
    upload_proof_path: str = "/dashboard/bookings/{booking_id}/upload-proof"

    # Reservation workflow
    payment_redirect_delay_seconds: float = Field(0.1, ge=0)
    service_fee_rate: float = Field(0.1, ge=0)
    cancel_unpaid_bookings: bool = True

    # Fallback company account shown for bank transfers
    bank_account_name: str = "Hols Apartments Ltd"
    bank_account_number: str = "0900408855"
    bank_name: str = "GT Bank"

    @model_validator(mode="after")
    def validate_settings(self):
        _validate_public_http_url(
            self.backend_api_url, "BACKEND_API_URL", reject_placeholders=True
        )

        if "{booking_id}" not in self.upload_proof_path:
            raise ValueError("UPLOAD_PROOF_PATH must contain a '{booking_id}' placeholder.")

        for field_name, value in {
            "LOGIN_PATH": self.login_path,
            "BOOKINGS_PATH": self.bookings_path,
            "UPLOAD_PROOF_PATH": self.upload_proof_path,
        }.items():
            if not value.startswith("/"):
                raise ValueError(f"{field_name} must be an absolute in-app path.")

        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
