from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
import secrets

class Settings(BaseSettings):
    # ----------------------------------
    # App General Info
    # ----------------------------------
    PROJECT_NAME: str = "SupportDesk"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = Field(
        default="development",
        description="Current environment: development, testing, staging, or production"
    )
    LOG_LEVEL: str = Field(default="INFO", description="Root log level for the service")

    # ----------------------------------
    # Relational Database (users, tickets, ticket_messages)
    # ----------------------------------
    DATABASE_URL: str = Field(default="sqlite:///./supportdesk.db")

    # ----------------------------------
    # Blob Storage (ticket attachments)
    # ----------------------------------
    STORAGE_BACKEND: str = Field(default="local", description="Attachment storage backend: local or gcs")
    STORAGE_ROOT: str = Field(default="./storage", description="Root directory for the local storage backend")
    ATTACHMENTS_BUCKET: str = Field(default="ticket-attachments", description="Bucket holding ticket attachments")
    GCP_PROJECT_ID: Optional[str] = Field(default=None, description="Google Cloud Project ID (gcs backend)")

    # ----------------------------------
    # Ticket form rules
    # ----------------------------------
    MAX_ATTACHMENT_BYTES: int = Field(
        default=10 * 1024 * 1024,
        description="Largest accepted attachment, in bytes.",
    )
    ALLOWED_ATTACHMENT_EXTENSIONS: str = Field(
        default=".png,.jpg,.jpeg,.pdf,.doc,.docx",
        description="Comma-separated list of accepted attachment extensions.",
    )
    TICKET_LIST_ROUTE: str = Field(
        default="/dashboard/tickets",
        description="Route the client is sent to after a successful submission.",
    )

    # ----------------------------------
    # Auth (JWT)
    # ----------------------------------
    JWT_SECRET_KEY: str = Field(
        default_factory=lambda: secrets.token_urlsafe(48),
        description="JWT signing secret. Set in .env for stable sessions.",
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @property
    def allowed_attachment_extensions(self) -> set[str]:
        return {
            ext.strip().lower()
            for ext in self.ALLOWED_ATTACHMENT_EXTENSIONS.split(",")
            if ext.strip()
        }

settings = Settings()
