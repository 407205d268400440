"""Configuration settings for the club hosting backend.

Wraps environment variables and provides defaults.
"""

from typing import Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings class.

    Attributes:
    ----------
        PROJECT_NAME (str): The name of the project.
        LOCAL_DEVELOPMENT (bool): Whether the application is running locally.
        ENVIRONMENT (str): The deployment environment (local, dev, test, prd).
        DEBUG (bool): Whether debug mode is enabled.
        LOG_LEVEL (str): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        POSTGRES_HOST (str): The PostgreSQL server hostname.
        POSTGRES_PORT (int): The PostgreSQL server port.
        POSTGRES_DB (str): The PostgreSQL database name.
        POSTGRES_USER (str): The PostgreSQL username.
        POSTGRES_PASSWORD (str): The PostgreSQL password.
        SQLALCHEMY_ASYNC_DATABASE_URI (Optional[str]): The SQLAlchemy async database URI.
        CREATE_TABLES_ON_STARTUP (bool): Whether to create missing tables on startup.
        STRIPE_ENABLED (bool): Whether payment processing is enabled.
        STRIPE_SECRET_KEY (Optional[str]): The Stripe secret API key.
        STRIPE_WEBHOOK_SECRET (Optional[str]): The secret used to sign webhook payloads.
        STRIPE_PRICE_ID_TIER_A (Optional[str]): Stripe price for the tier_a host plan.
        STRIPE_PRICE_ID_TIER_B (Optional[str]): Stripe price for the tier_b host plan.
        STRIPE_PRICE_ID_TIER_C (Optional[str]): Stripe price for the tier_c host plan.
        APP_FULL_URL (Optional[str]): Public URL of the frontend, used for checkout redirects.
        HOST_PLAN_TRIAL_DAYS (int): Length of the host plan trial offered at checkout.
        TRANSACTION_MAX_ATTEMPTS (int): How often a contended transaction is re-executed.
        WEBHOOK_DEDUPLICATE_EVENTS (bool): Whether webhook deliveries are claimed by event id.
        WEBHOOK_CLAIM_LEASE_SECONDS (int): Age after which an unfinished claim may be retaken.
        HOST_PLAN_RECONCILER_ENABLED (bool): Whether the tier reconciler runs in the background.
        HOST_PLAN_RECONCILE_INTERVAL_SECONDS (int): Seconds between reconciler runs.
        AUTH_UID_HEADER (str): Header carrying the uid set by the upstream identity layer.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "Clubhost"
    LOCAL_DEVELOPMENT: bool = False
    ENVIRONMENT: str = "local"
    FRONTEND_LOCAL_DEVELOPMENT_PORT: int = 3000

    # Debug configuration
    DEBUG: bool = False

    # Logging configuration
    LOG_LEVEL: str = "INFO"

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "clubhost"
    POSTGRES_USER: str = "clubhost"
    POSTGRES_PASSWORD: str = ""
    SQLALCHEMY_ASYNC_DATABASE_URI: Optional[str] = Field(default=None, validate_default=True)

    CREATE_TABLES_ON_STARTUP: bool = False

    # Stripe billing configuration
    STRIPE_ENABLED: bool = False
    STRIPE_SECRET_KEY: Optional[str] = Field(default=None, validate_default=True)
    STRIPE_WEBHOOK_SECRET: Optional[str] = Field(default=None, validate_default=True)
    STRIPE_PRICE_ID_TIER_A: Optional[str] = None
    STRIPE_PRICE_ID_TIER_B: Optional[str] = None
    STRIPE_PRICE_ID_TIER_C: Optional[str] = None

    APP_FULL_URL: Optional[str] = None

    HOST_PLAN_TRIAL_DAYS: int = 14

    TRANSACTION_MAX_ATTEMPTS: int = 5

    WEBHOOK_DEDUPLICATE_EVENTS: bool = True
    WEBHOOK_CLAIM_LEASE_SECONDS: int = 300

    HOST_PLAN_RECONCILER_ENABLED: bool = False
    HOST_PLAN_RECONCILE_INTERVAL_SECONDS: int = 86400

    AUTH_UID_HEADER: str = "X-User-Id"

    @field_validator("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", mode="before")
    def validate_stripe_secrets(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Require the Stripe secrets when billing is enabled.

        Args:
        ----
            v (Optional[str]): The value of the Stripe setting.
            info (ValidationInfo): The validation context containing all field values.

        Returns:
        -------
            Optional[str]: The validated Stripe setting.

        Raises:
        ------
            ValueError: If billing is enabled and the setting is empty.

        """
        if info.data.get("STRIPE_ENABLED") and not v:
            raise ValueError(f"{info.field_name} must be set when STRIPE_ENABLED is true")
        return v

    @field_validator("SQLALCHEMY_ASYNC_DATABASE_URI", mode="before")
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> str:
        """Build the SQLAlchemy database URI.

        Args:
        ----
            v (Optional[str]): The value of the SQLALCHEMY_ASYNC_DATABASE_URI setting.
            info (ValidationInfo): The validation context containing all field values.

        Returns:
        -------
            str: The assembled SQLAlchemy async database URI.

        """
        if isinstance(v, str) and v:
            return v

        user = info.data.get("POSTGRES_USER")
        password = info.data.get("POSTGRES_PASSWORD")
        host = info.data.get("POSTGRES_HOST", "localhost")
        port = info.data.get("POSTGRES_PORT", 5432)
        db = info.data.get("POSTGRES_DB") or ""
        credentials = f"{user}:{password}" if password else f"{user}"
        return f"postgresql+asyncpg://{credentials}@{host}:{port}/{db}"

    @property
    def app_url(self) -> str:
        """The app URL.

        Returns:
            str: The app URL.
        """
        if self.APP_FULL_URL:
            return self.APP_FULL_URL

        if self.ENVIRONMENT == "local":
            return f"http://localhost:{self.FRONTEND_LOCAL_DEVELOPMENT_PORT}"
        return f"https://app.{self.ENVIRONMENT}.clubhost.app"


settings = Settings()
