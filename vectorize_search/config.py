"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from vectorize_search.exceptions import ConfigurationError


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class CloudflareSettings(BaseSettings):
    """Cloudflare account, Vectorize index and Workers AI configuration."""

    model_config = SettingsConfigDict(env_prefix="CLOUDFLARE_")

    account_id: str | None = Field(
        default=None,
        description="Cloudflare account ID",
    )
    api_token: SecretStr | None = Field(
        default=None,
        description="API token with Vectorize and Workers AI permissions",
    )
    vectorize_index: str = Field(
        default="default",
        description="Name of the Vectorize index",
    )
    embedding_model: str = Field(
        default="@cf/baai/bge-base-en-v1.5",
        description="Workers AI embedding model (index dimensions must match)",
    )
    api_base_url: str = Field(
        default="https://api.cloudflare.com/client/v4",
        description="Cloudflare API base URL",
    )
    timeout: float = Field(
        default=30.0,
        description="Request timeout in seconds",
    )
    connect_timeout: float = Field(
        default=10.0,
        description="Connect timeout in seconds",
    )

    def require_credentials(self) -> None:
        """Ensure the settings needed for a remote call are present.

        Raises:
            ConfigurationError: If the account ID, API token or index name
                is missing.
        """
        missing = []
        if not self.account_id:
            missing.append("CLOUDFLARE_ACCOUNT_ID")
        if self.api_token is None or not self.api_token.get_secret_value():
            missing.append("CLOUDFLARE_API_TOKEN")
        if not self.vectorize_index:
            missing.append("CLOUDFLARE_VECTORIZE_INDEX")

        if missing:
            raise ConfigurationError(
                f"Missing Cloudflare configuration: {', '.join(missing)}",
                details={"missing": missing},
            )


class SearchSettings(BaseSettings):
    """Search engine behaviour."""

    model_config = SettingsConfigDict(env_prefix="SCOUT_VECTORIZE_")

    default_limit: int = Field(
        default=10,
        description="Results returned by search when no limit is given",
    )
    paginate_cap: int = Field(
        default=100,
        description="Upper bound on results requested by paginate",
    )
    flush_batch_size: int = Field(
        default=100,
        description="Matches requested per flush sweep iteration",
    )
    flush_max_iterations: int = Field(
        default=10_000,
        description="Sweep iterations allowed before flush gives up",
    )
    metadata_fields: list[str] = Field(
        default_factory=list,
        description="Searchable fields copied into vector metadata for filtering",
    )
    import_chunk_size: int = Field(
        default=100,
        description="Records sent per update call by the import command",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    # Nested settings
    cloudflare: CloudflareSettings = Field(default_factory=CloudflareSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
