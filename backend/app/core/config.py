from typing import Annotated, Any
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field, AnyUrl, BeforeValidator


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",")]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    APP_NAME: str = "HostOps"
    API_PREFIX: str = "/api"

    # Database
    DATABASE_URL: str

    # Inbound email routing: <prefix>+<workspace_id>@<domain>
    INBOUND_EMAIL_PREFIX: str = "inbound"

    # Draft pipeline
    DRAFT_CONTEXT_MESSAGE_LIMIT: int = 10
    KEYWORD_LIMIT: int = 5
    DRAFT_REQUEST_TIMEOUT_SECONDS: float | None = None

    # Knowledge retrieval caps (per scope)
    KB_WORKSPACE_MATCH_LIMIT: int = 2
    KB_PROPERTY_MATCH_LIMIT: int = 2
    KB_FALLBACK_LIMIT: int = 3

    FRONTEND_HOST: str = "http://localhost:3000"
    BACKEND_CORS_ORIGINS: Annotated[list[AnyUrl] | str, BeforeValidator(parse_cors)] = [
        "http://localhost:8000"
    ]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ALL_CORS_ORIGINS(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
