"""Library settings.

All configuration is loaded from environment variables (a ``.env`` file in the
working directory is honoured). Services obtain the process-wide instance
through :func:`get_settings`; tests build their own ``Settings`` directly or
call :func:`reset_settings`.

Environment Variables:
    APP_NAME, APP_STACK, APP_COMPONENTS: Application profile used in prompts
    INGESTION_API_KEY: Shared secret expected from webhook callers
    TRAINING_LOG_DIR: Directory for training-incident JSONL logs (default: logs)
    REMEDIATION_STEP_DELAY_SECONDS: Simulated latency per step (default: 0)
    PLAN_RETENTION_SECONDS: Time-to-live of finished plans (default: 3600)
    LLM_PROVIDER: Primary provider name (default: anthropic)
    LLM_REQUEST_TIMEOUT, LLM_MAX_RETRIES: Provider call limits
    ANTHROPIC_API_KEY / ANTHROPIC_MODEL / ANTHROPIC_API_BASE
    OPENAI_API_KEY / OPENAI_MODEL / OPENAI_API_BASE
    INCIDENT_SERVICE_URL, INCIDENT_SERVICE_TIMEOUT: Incident persistence service
"""

import logging
import os
from datetime import timedelta
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr

logger = logging.getLogger(__name__)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    """Settings for the incident core."""

    # Application profile (prompt parameters)
    app_name: str = "Incident Analyst"
    app_stack: str = "AWS"
    app_components: List[str] = Field(default_factory=list)

    # Ingestion
    ingestion_api_key: SecretStr = SecretStr("")
    training_log_dir: str = "logs"

    # Remediation
    remediation_step_delay_seconds: float = Field(default=0.0, ge=0.0)
    plan_retention_seconds: int = Field(default=3600, gt=0)

    # LLM
    llm_provider: str = "anthropic"
    llm_request_timeout: int = Field(default=30, gt=0)
    llm_max_retries: int = Field(default=3, ge=0)
    anthropic_api_key: Optional[SecretStr] = None
    anthropic_model: Optional[str] = None
    anthropic_base_url: Optional[str] = None
    openai_api_key: Optional[SecretStr] = None
    openai_model: Optional[str] = None
    openai_base_url: Optional[str] = None

    # Persistence collaborator
    incident_service_url: str = "http://localhost:8005"
    incident_service_timeout: float = Field(default=30.0, gt=0)

    @property
    def plan_retention(self) -> timedelta:
        return timedelta(seconds=self.plan_retention_seconds)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load configuration from environment variables."""
        def secret(name: str) -> Optional[SecretStr]:
            value = os.getenv(name)
            return SecretStr(value) if value else None

        return cls(
            app_name=os.getenv("APP_NAME", "Incident Analyst"),
            app_stack=os.getenv("APP_STACK", "AWS"),
            app_components=_split_csv(os.getenv("APP_COMPONENTS", "")),
            ingestion_api_key=SecretStr(os.getenv("INGESTION_API_KEY", "")),
            training_log_dir=os.getenv("TRAINING_LOG_DIR", "logs"),
            remediation_step_delay_seconds=float(os.getenv("REMEDIATION_STEP_DELAY_SECONDS", "0")),
            plan_retention_seconds=int(os.getenv("PLAN_RETENTION_SECONDS", "3600")),
            llm_provider=os.getenv("LLM_PROVIDER", "anthropic").lower(),
            llm_request_timeout=int(os.getenv("LLM_REQUEST_TIMEOUT", "30")),
            llm_max_retries=int(os.getenv("LLM_MAX_RETRIES", "3")),
            anthropic_api_key=secret("ANTHROPIC_API_KEY"),
            anthropic_model=os.getenv("ANTHROPIC_MODEL"),
            anthropic_base_url=os.getenv("ANTHROPIC_API_BASE"),
            openai_api_key=secret("OPENAI_API_KEY"),
            openai_model=os.getenv("OPENAI_MODEL"),
            openai_base_url=os.getenv("OPENAI_API_BASE"),
            incident_service_url=os.getenv("INCIDENT_SERVICE_URL", "http://localhost:8005"),
            incident_service_timeout=float(os.getenv("INCIDENT_SERVICE_TIMEOUT", "30")),
        )


# Singleton instance for global access
_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global Settings instance.

    Example:
        ```python
        from incident_core_lib.config import get_settings

        settings = get_settings()
        retention = settings.plan_retention
        ```
    """
    global _settings_instance

    if _settings_instance is None:
        load_dotenv()
        _settings_instance = Settings.from_env()
        logger.info(
            f"Settings loaded: app={_settings_instance.app_name}, "
            f"llm_provider={_settings_instance.llm_provider}"
        )

    return _settings_instance


def reset_settings():
    """Reset the global Settings instance.

    Used for testing or reconfiguration.
    """
    global _settings_instance
    _settings_instance = None
    logger.warning("Settings instance reset")
