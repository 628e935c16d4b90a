"""
Settings and the model catalogue.

``AppSettings`` comes from the environment (and ``.env``) through
pydantic-settings. The catalogue is a YAML file, ``models.yml``; a copy in
APP_CONFIG_DIR overrides the one shipped with the package.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


def resolve_env_var(value: Optional[str], required: bool = True) -> Optional[str]:
    """
    Resolve environment variables in config values.

    Supports patterns like:
    - "${ENV_VAR_NAME}" -> replaced with os.environ.get("ENV_VAR_NAME")
    - "literal-string" -> returned as-is
    - None -> returned as-is

    Only complete env var patterns are resolved. Values like "prefix-${VAR}"
    are treated as literals and returned unchanged.

    Raises:
        ValueError: If env var pattern is found but variable is not set and required=True
    """
    if value is None:
        return None

    pattern = r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}'
    match = re.fullmatch(pattern, value)

    if match:
        env_var_name = match.group(1)
        env_value = os.environ.get(env_var_name)

        if env_value is None:
            if required:
                raise ValueError(
                    f"Environment variable '{env_var_name}' is not set but required in config"
                )
            return None

        return env_value

    return value


class ModelDescriptor(BaseModel):
    """Static description of one selectable model."""
    id: str
    label: str
    api_identifier: str
    description: str = ""
    max_tokens: Optional[int] = 4096
    temperature: Optional[float] = None
    # Optional override of the vendor endpoint (supports ${ENV_VAR})
    api_base: Optional[str] = None


class ModelsConfig(BaseModel):
    """The model catalogue and its default entry."""
    models: List[ModelDescriptor] = Field(default_factory=list)
    default_model: Optional[str] = None

    @field_validator('models', mode='before')
    @classmethod
    def validate_models(cls, v):
        """Accept either a list of entries or a mapping keyed by model id."""
        if isinstance(v, dict):
            return [
                {"id": model_id, **(entry or {})} if isinstance(entry, dict) or entry is None else entry
                for model_id, entry in v.items()
            ]
        return v

    @model_validator(mode='after')
    def validate_catalogue(self):
        ids = [m.id for m in self.models]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate model ids in catalogue: {duplicates}")
        if self.models:
            if self.default_model is None:
                self.default_model = self.models[0].id
            elif self.default_model not in ids:
                raise ValueError(
                    f"default_model '{self.default_model}' is not one of the configured models"
                )
        return self

    def get(self, model_id: Optional[str]) -> Optional[ModelDescriptor]:
        for model in self.models:
            if model.id == model_id:
                return model
        return None


class AppSettings(BaseSettings):
    """Main application settings loaded from environment variables."""

    # Application settings
    app_name: str = "Chatblocks"
    port: int = 8000
    debug_mode: bool = False
    # Logging settings
    log_level: str = "INFO"  # Override default logging level (DEBUG, INFO, WARNING, ERROR)
    feature_metrics_logging_enabled: bool = Field(
        False,
        description="Enable metrics logging for user activities (LLM calls, tool calls, document saves, errors)",
        validation_alias=AliasChoices("FEATURE_METRICS_LOGGING_ENABLED"),
    )
    # Suppress LiteLLM verbose logging (independent of log_level)
    feature_suppress_litellm_logging: bool = Field(
        default=True,
        description="Suppress LiteLLM verbose stdout/debug output by setting LITELLM_LOG=ERROR",
        validation_alias=AliasChoices("FEATURE_SUPPRESS_LITELLM_LOGGING"),
    )

    # Authentication
    test_user: str = "test@test.com"  # Test user for development
    auth_user_header: str = Field(
        default="X-User-Email",
        description="HTTP header name to extract authenticated username from reverse proxy",
        validation_alias="AUTH_USER_HEADER"
    )

    # Config file locations
    app_config_dir: str = Field(default="config", validation_alias="APP_CONFIG_DIR")
    models_config_file: str = Field(default="models.yml", validation_alias="MODELS_CONFIG_FILE")
    prompts_dir: Optional[str] = Field(default=None, validation_alias="PROMPTS_DIR")

    # Persistence
    chat_history_db_url: str = Field(
        default="duckdb:///data/chatblocks.db",
        validation_alias="CHAT_HISTORY_DB_URL",
    )

    # Chat turn settings
    title_model: str = Field(default="gpt-4o-mini", validation_alias="TITLE_MODEL")
    max_steps: int = Field(
        default=5,
        description="Maximum model call-and-response steps per chat turn",
        validation_alias="MAX_STEPS",
    )
    turn_timeout_seconds: float = Field(
        default=60.0,
        description="Wall-clock budget for a whole chat turn",
        validation_alias="TURN_TIMEOUT_SECONDS",
    )
    model_cookie_name: str = "model-id"

    # Weather tool
    weather_api_url: str = Field(
        default="https://api.open-meteo.com/v1/forecast",
        validation_alias="WEATHER_API_URL",
    )
    weather_timeout_seconds: float = Field(default=10.0, validation_alias="WEATHER_TIMEOUT_SECONDS")

    # Vendor credentials
    openai_api_key: Optional[str] = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_api_base: Optional[str] = Field(default=None, validation_alias="OPENAI_API_BASE")
    anthropic_api_key: Optional[str] = Field(default=None, validation_alias="ANTHROPIC_API_KEY")
    google_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_API_KEY", "GEMINI_API_KEY", "GOOGLE_GENERATIVE_AI_API_KEY"),
    )

    model_config = {
        "env_file": "../.env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "env_prefix": "",
    }


class ConfigManager:
    """Cached access to the settings and the model catalogue."""

    def __init__(self, package_root: Optional[Path] = None):
        self._package_root = package_root or Path(__file__).parent.parent.parent
        self._app_settings: Optional[AppSettings] = None
        self._models_config: Optional[ModelsConfig] = None

    def catalogue_candidates(self) -> List[Path]:
        """Where models.yml is looked for, first hit wins.

        APP_CONFIG_DIR as given (relative to the working directory), the
        same directory relative to the project root, then the copy shipped
        inside the package.
        """
        settings = self.app_settings
        config_dir = Path(settings.app_config_dir)
        candidates = [config_dir / settings.models_config_file]
        if not config_dir.is_absolute():
            candidates.append(self._package_root.parent / config_dir / settings.models_config_file)
        candidates.append(self._package_root / "config" / settings.models_config_file)

        unique: List[Path] = []
        for path in candidates:
            if path not in unique:
                unique.append(path)
        return unique

    @staticmethod
    def _read_catalogue(path: Path) -> Optional[Dict[str, Any]]:
        """Parse one catalogue file; None if it is unreadable or not a mapping."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Could not read model catalogue {path}: {e}", exc_info=True)
            return None
        if not isinstance(data, dict):
            logger.error(f"Model catalogue {path} must be a mapping, got {type(data).__name__}")
            return None
        return data

    @property
    def app_settings(self) -> AppSettings:
        """Get application settings (cached)."""
        if self._app_settings is None:
            self._app_settings = AppSettings()
            logger.info("Application settings loaded successfully")
        return self._app_settings

    @property
    def models_config(self) -> ModelsConfig:
        """Get the model catalogue (cached).

        A catalogue that fails validation is logged and replaced by an
        empty one, so the app still starts and reports no models.
        """
        if self._models_config is not None:
            return self._models_config

        self._models_config = ModelsConfig()
        for path in self.catalogue_candidates():
            if not path.exists():
                continue
            data = self._read_catalogue(path)
            if data is None:
                continue
            try:
                catalogue = ModelsConfig(**data)
            except ValueError as e:
                logger.error(f"Invalid model catalogue {path}: {e}", exc_info=True)
                break
            for model in catalogue.models:
                if model.api_base:
                    model.api_base = resolve_env_var(model.api_base, required=False)
            self._models_config = catalogue
            logger.info(f"Loaded {len(catalogue.models)} models from {path}")
            break
        else:
            logger.warning("No model catalogue found; the model list is empty")

        return self._models_config

    def get_model(self, model_id: Optional[str]) -> Optional[ModelDescriptor]:
        """Look up a model descriptor by id."""
        return self.models_config.get(model_id)

    def reload_configs(self) -> None:
        """Drop the cached settings and catalogue."""
        self._app_settings = None
        self._models_config = None
        logger.info("Configuration cache cleared, will reload on next access")


# Global configuration manager instance
config_manager = ConfigManager()
