"""
Configuration management and validation for the payroll chat client.

Settings come from an optional YAML file merged with environment variables.
The agent service endpoint and agent id are required; anything missing or
invalid is reported as a ConfigurationError before the chat core is built.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import AnyHttpUrl, BaseModel, Field, TypeAdapter, ValidationError, field_validator


class AgentServiceConfig(BaseModel):
    """Connection settings for the remote agent service."""
    project_endpoint: str = Field(..., min_length=1)
    agent_id: str = Field(..., min_length=1)
    api_version: str = "2025-05-01"
    request_timeout: float = Field(default=30.0, gt=0)
    access_token_env: str = "PAYROLL_CHAT_ACCESS_TOKEN"

    @field_validator("project_endpoint")
    @classmethod
    def validate_endpoint(cls, v):
        """Require an http(s) URL."""
        TypeAdapter(AnyHttpUrl).validate_python(v)
        return v.rstrip("/")

    @field_validator("agent_id")
    @classmethod
    def validate_agent_id(cls, v):
        if not v.strip():
            raise ValueError("agent_id cannot be blank")
        return v.strip()


class PollingConfig(BaseModel):
    """Run polling settings."""
    interval_seconds: float = Field(default=0.5, gt=0)
    max_wait_seconds: Optional[float] = Field(default=None, gt=0)


class UploadConfig(BaseModel):
    """Attachment upload settings."""
    max_file_bytes: int = Field(default=512 * 1024 * 1024, gt=0)


class LoggingConfig(BaseModel):
    """Configuration for logging settings."""
    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    console_level: str = Field(default="WARNING", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="simple", pattern="^(structured|simple)$")
    directory: str = "~/.payroll_chat/logs"
    max_file_size: int = Field(default=10 * 1024 * 1024, gt=0)
    backup_count: int = Field(default=5, ge=1)
    include_trace: bool = True

    @field_validator("level", "console_level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class ObservabilityConfig(BaseModel):
    """Configuration for OpenTelemetry export."""
    enabled: bool = False
    service_name: str = "payroll-chat"
    service_version: str = "1.0.0"
    otlp_endpoint: str = "http://localhost:4317"
    export_timeout: int = Field(default=10, gt=0)


class ChatConfig(BaseModel):
    """Main payroll chat configuration."""
    agent_service: AgentServiceConfig
    polling: PollingConfig = Field(default_factory=PollingConfig)
    uploads: UploadConfig = Field(default_factory=UploadConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    debug: bool = False
    config_file_path: Optional[str] = None


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""
    pass


class ConfigurationManager:
    """Manages configuration loading and validation."""

    # Flat keys accepted at the top level of the YAML file
    FLAT_KEYS = {
        "ProjectEndpoint": ["agent_service", "project_endpoint"],
        "AgentId": ["agent_service", "agent_id"],
    }

    ENV_MAPPINGS = {
        "PAYROLL_CHAT_PROJECT_ENDPOINT": ["agent_service", "project_endpoint"],
        "PAYROLL_CHAT_AGENT_ID": ["agent_service", "agent_id"],
        "PAYROLL_CHAT_LOG_LEVEL": ["logging", "level"],
        "PAYROLL_CHAT_POLL_INTERVAL": ["polling", "interval_seconds"],
        "PAYROLL_CHAT_DEBUG": ["debug"],
        "OTEL_EXPORTER_OTLP_ENDPOINT": ["observability", "otlp_endpoint"],
    }

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._get_default_config_path()
        self.config: Optional[ChatConfig] = None

    def _get_default_config_path(self) -> str:
        """Get the default configuration file path."""
        if "PAYROLL_CHAT_CONFIG_PATH" in os.environ:
            return os.environ["PAYROLL_CHAT_CONFIG_PATH"]

        candidates = [
            "./payroll_chat.yaml",
            "./config/payroll_chat.yaml",
            "~/.payroll_chat/config.yaml"
        ]

        for candidate in candidates:
            path = Path(candidate).expanduser()
            if path.exists():
                return str(path)

        return "~/.payroll_chat/config.yaml"

    def load_config(self, config_path: Optional[str] = None) -> ChatConfig:
        """Load and validate configuration from file and environment."""
        if config_path:
            self.config_path = config_path

        config_file = Path(self.config_path).expanduser()
        config_data: Dict[str, Any] = {}

        if config_file.exists():
            try:
                with open(config_file, 'r') as f:
                    config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in config file {config_file}: {e}")
            if not isinstance(config_data, dict):
                raise ConfigurationError(f"Config file {config_file} must contain a mapping")

        config_data = self._merge_flat_keys(config_data)
        config_data = self._merge_environment_config(config_data)

        service = config_data.get("agent_service") or {}
        missing = [name for name, key in (("ProjectEndpoint", "project_endpoint"), ("AgentId", "agent_id"))
                   if not service.get(key)]
        if missing:
            raise ConfigurationError(f"{' and '.join(missing)} not configured")

        try:
            self.config = ChatConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}")

        self.config.config_file_path = str(config_file) if config_file.exists() else None
        return self.config

    def _merge_flat_keys(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Move top-level ProjectEndpoint/AgentId keys into their section."""
        for flat_key, config_path in self.FLAT_KEYS.items():
            if flat_key in config_data:
                value = config_data.pop(flat_key)
                section = config_data.setdefault(config_path[0], {})
                section.setdefault(config_path[1], value)
        return config_data

    def _merge_environment_config(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Merge configuration with environment variables."""
        for env_var, config_path in self.ENV_MAPPINGS.items():
            if env_var in os.environ:
                value: Any = os.environ[env_var]

                if env_var == "PAYROLL_CHAT_DEBUG":
                    value = value.lower() in ("true", "1", "yes")

                current = config_data
                for key in config_path[:-1]:
                    current = current.setdefault(key, {})
                current[config_path[-1]] = value

        return config_data

    def get_config(self) -> ChatConfig:
        """Get the loaded configuration."""
        if self.config is None:
            raise ConfigurationError("Configuration not loaded. Call load_config() first.")
        return self.config

    def get_access_token(self) -> str:
        """Read the service credential from the configured environment variable."""
        env_var = self.get_config().agent_service.access_token_env
        token = os.environ.get(env_var, "").strip()
        if not token:
            raise ConfigurationError(f"Access token not found: set the {env_var} environment variable")
        return token

    def validate_config(self) -> List[str]:
        """Validate the current configuration and return any warnings."""
        warnings = []
        config = self.get_config()

        if not config.agent_service.project_endpoint.startswith("https://"):
            warnings.append("Project endpoint does not use HTTPS")

        if config.polling.max_wait_seconds is None:
            warnings.append("No polling ceiling configured; runs are awaited until they finish or are cancelled")
        elif config.polling.max_wait_seconds < config.polling.interval_seconds:
            warnings.append("Polling ceiling is shorter than the polling interval")

        if config.agent_service.access_token_env not in os.environ:
            warnings.append(f"{config.agent_service.access_token_env} is not set")

        return warnings


def initialize_config(config_path: Optional[str] = None) -> ConfigurationManager:
    """Create a configuration manager and load the configuration."""
    manager = ConfigurationManager(config_path)
    manager.load_config()
    return manager
