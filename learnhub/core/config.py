from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Any, Optional
import json
from pathlib import Path


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "LearnHub Groups"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_VERSION: str = "v1"

    # ==========================================
    # Strapi (external content store)
    # ==========================================
    STRAPI_URL: str = "http://localhost:1337"
    STRAPI_API_TOKEN: str = ""  # Empty means requests carry only the caller's token
    STRAPI_TIMEOUT_SECONDS: Optional[float] = 30.0

    # Collection endpoints
    USERS_ENDPOINT: str = "/api/users"
    USER_SUBSCRIPTIONS_ENDPOINT: str = "/api/user-subscriptions"
    INSTRUCTORS_ENDPOINT: str = "/api/instructors"
    INSTRUCTOR_GROUPS_ENDPOINT: str = "/api/instructor-groups"
    INSTRUCTOR_INVITATIONS_ENDPOINT: str = "/api/instructor-invitations"
    USER_GROUPS_ENDPOINT: str = "/api/user-group-groups"
    GROUP_REQUESTS_ENDPOINT: str = "/api/user-request-requests"

    # ==========================================
    # Groups & Invitations
    # ==========================================
    DEFAULT_GROUP_MEMBER_LIMIT: int = 0  # 0 = unlimited unless the owner has a limit
    MEMBERSHIP_VERSION_CHECK: bool = True
    INVITATION_FULL_SCAN_FALLBACK: bool = False
    INVITATION_SCAN_PAGE_SIZE: int = 100
    MAX_PAGE_SIZE: int = 100

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""  # Empty disables the rotating file handler

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields in .env that aren't defined in Settings
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.LOG_FILE:
            Path(self.LOG_FILE).parent.mkdir(exist_ok=True, parents=True)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def strapi_base_url(self) -> str:
        return self.STRAPI_URL.rstrip("/")


settings = Settings()
