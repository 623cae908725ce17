"""
Configuration system for lgtrefactor

Provides configuration management with support for files and environment variables.
Includes validation, default value handling, and configuration merging.
"""

import os
import json
import string
import yaml
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any
import logging

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigurationManager:
    """Manages configuration loading, validation, and merging."""

    DEFAULT_CONFIG_PATHS = [
        "lgtrefactor.yaml",
        "lgtrefactor.yml",
        "lgtrefactor.json",
        ".lgtrefactor.yaml",
        ".lgtrefactor.yml",
        ".lgtrefactor.json",
        os.path.expanduser("~/.lgtrefactor.yaml"),
        os.path.expanduser("~/.lgtrefactor.json"),
    ]

    @staticmethod
    def find_config_file(search_paths: Optional[List[str]] = None) -> Optional[str]:
        """Find the first existing configuration file."""
        paths = search_paths or ConfigurationManager.DEFAULT_CONFIG_PATHS

        for path in paths:
            if os.path.exists(path):
                return path
        return None

    @staticmethod
    def load_config_file(config_path: str) -> Dict[str, Any]:
        """Load configuration from file (JSON or YAML)."""
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if config_path.endswith((".yaml", ".yml")):
                    data = yaml.safe_load(f) or {}
                else:
                    data = json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Invalid configuration file format: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading configuration file: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {config_path}")
        return data

    @staticmethod
    def load_env_config() -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config = {}

        # Rewrite settings
        rewrite = {}
        for key in (
            "mode_placeholder",
            "meta_placeholder",
            "argname_template",
            "argument_template",
            "default_indent",
        ):
            value = os.getenv(f"LGTREFACTOR_{key.upper()}")
            if value is not None:
                rewrite[key] = value

        if rewrite:
            config["rewrite"] = rewrite

        # Workspace settings
        workspace = {}
        if os.getenv("LGTREFACTOR_INCLUDE_PATTERNS"):
            workspace["include_patterns"] = os.getenv("LGTREFACTOR_INCLUDE_PATTERNS").split(",")

        if os.getenv("LGTREFACTOR_EXCLUDE_PATTERNS"):
            workspace["exclude_patterns"] = os.getenv("LGTREFACTOR_EXCLUDE_PATTERNS").split(",")

        if os.getenv("LGTREFACTOR_ENCODING"):
            workspace["encoding"] = os.getenv("LGTREFACTOR_ENCODING")

        if os.getenv("LGTREFACTOR_MAX_FILE_SIZE"):
            try:
                workspace["max_file_size"] = int(os.getenv("LGTREFACTOR_MAX_FILE_SIZE"))
            except ValueError:
                logger.warning("Invalid LGTREFACTOR_MAX_FILE_SIZE value, using default")

        if workspace:
            config["workspace"] = workspace

        # Transaction settings
        transaction = {}
        if os.getenv("LGTREFACTOR_BACKUP_ENABLED"):
            transaction["backup_enabled"] = _env_bool(os.getenv("LGTREFACTOR_BACKUP_ENABLED"))

        if os.getenv("LGTREFACTOR_BACKUP_DIRECTORY"):
            transaction["backup_directory"] = os.getenv("LGTREFACTOR_BACKUP_DIRECTORY")

        if os.getenv("LGTREFACTOR_DRY_RUN"):
            transaction["dry_run"] = _env_bool(os.getenv("LGTREFACTOR_DRY_RUN"))

        if transaction:
            config["transaction"] = transaction

        # Logging settings
        if os.getenv("LGTREFACTOR_LOG_LEVEL"):
            config["logging"] = {"level": os.getenv("LGTREFACTOR_LOG_LEVEL").upper()}

        return config

    @staticmethod
    def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
        """Merge multiple configuration dictionaries, with later ones taking precedence."""
        result = {}

        for config in configs:
            if not config:
                continue

            for key, value in config.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = ConfigurationManager.merge_configs(result[key], value)
                else:
                    result[key] = value

        return result

    @staticmethod
    def _validate_template(key: str, template: Any) -> None:
        if not isinstance(template, str) or not template.strip():
            raise ConfigurationError(f"{key} must be a non-empty string")
        try:
            fields = {name for _, name, _, _ in string.Formatter().parse(template) if name is not None}
        except ValueError as e:
            raise ConfigurationError(f"{key} is not a valid template: {e}")
        if "name" not in fields:
            raise ConfigurationError(f"{key} must contain the {{name}} placeholder")
        unknown = fields - {"name"}
        if unknown:
            raise ConfigurationError(f"{key} uses unknown placeholders: {sorted(unknown)}")

    @staticmethod
    def validate_config(config_data: Dict[str, Any]) -> None:
        """Validate configuration data."""
        # Validate rewrite settings
        if "rewrite" in config_data:
            rewrite = config_data["rewrite"]

            for key in ("mode_placeholder", "meta_placeholder"):
                if key in rewrite:
                    value = rewrite[key]
                    if not isinstance(value, str) or not value.strip():
                        raise ConfigurationError(f"{key} must be a non-empty string")
                    if any(ch in value for ch in ",()[]"):
                        raise ConfigurationError(f"{key} must not contain separators or brackets")

            for key in ("argname_template", "argument_template"):
                if key in rewrite:
                    ConfigurationManager._validate_template(key, rewrite[key])

            if "default_indent" in rewrite:
                indent = rewrite["default_indent"]
                if not isinstance(indent, str) or indent.strip():
                    raise ConfigurationError("default_indent must contain only whitespace")

        # Validate workspace settings
        if "workspace" in config_data:
            workspace = config_data["workspace"]

            if "max_file_size" in workspace:
                size = workspace["max_file_size"]
                if not isinstance(size, int) or size <= 0:
                    raise ConfigurationError("max_file_size must be positive")

            for key in ("include_patterns", "exclude_patterns"):
                if key in workspace and not isinstance(workspace[key], list):
                    raise ConfigurationError(f"{key} must be a list of glob patterns")

        # Validate logging settings
        if "logging" in config_data:
            level = config_data["logging"].get("level")
            if level is not None and str(level).upper() not in LOG_LEVELS:
                raise ConfigurationError(f"logging level must be one of: {list(LOG_LEVELS)}")


@dataclass
class RewriteConfig:
    """Values inserted when rewriting directives."""

    mode_placeholder: str = "?"
    meta_placeholder: str = "*"
    argname_template: str = "'{name}'"
    argument_template: str = "'{name}' - ''"
    default_indent: str = "    "


@dataclass
class WorkspaceConfig:
    """Which files the workspace index scans."""

    include_patterns: List[str] = field(default_factory=lambda: ["**/*.lgt", "**/*.logtalk"])
    exclude_patterns: List[str] = field(
        default_factory=lambda: [
            "**/.git/**",
            "**/node_modules/**",
            "**/.lgtrefactor_backups/**",
        ]
    )
    encoding: str = "utf-8"
    max_file_size: int = 4 * 1024 * 1024  # 4MB


@dataclass
class TransactionConfig:
    """How edits are written to disk."""

    backup_enabled: bool = False
    backup_directory: str = ".lgtrefactor_backups"
    dry_run: bool = False


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class LgtRefactorConfig:
    """Main configuration class for lgtrefactor."""

    rewrite_settings: RewriteConfig = field(default_factory=RewriteConfig)
    workspace_settings: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    transaction_settings: TransactionConfig = field(default_factory=TransactionConfig)
    logging_settings: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def default(cls) -> "LgtRefactorConfig":
        """Create default configuration."""
        return cls()

    @classmethod
    def load(
        cls,
        config_path: Optional[str] = None,
        use_env: bool = True,
        validate: bool = True,
    ) -> "LgtRefactorConfig":
        """
        Load configuration from multiple sources with precedence:
        1. Default values
        2. Configuration file
        3. Environment variables (if use_env=True)

        Args:
            config_path: Path to configuration file. If None, searches for default files.
            use_env: Whether to load environment variables
            validate: Whether to validate the configuration
        """
        configs_to_merge = []

        # Load from file
        file_config = {}
        if config_path:
            file_config = ConfigurationManager.load_config_file(config_path)
        else:
            found_config = ConfigurationManager.find_config_file()
            if found_config:
                file_config = ConfigurationManager.load_config_file(found_config)
                logger.info(f"Loaded configuration from: {found_config}")

        configs_to_merge.append(file_config)

        # Load from environment variables
        if use_env:
            configs_to_merge.append(ConfigurationManager.load_env_config())

        merged_config = ConfigurationManager.merge_configs(*configs_to_merge)

        if validate:
            ConfigurationManager.validate_config(merged_config)

        return cls.from_dict(merged_config)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LgtRefactorConfig":
        """Build a configuration from a (partial) dictionary, ignoring unknown keys."""
        sections = (
            ("rewrite", RewriteConfig),
            ("workspace", WorkspaceConfig),
            ("transaction", TransactionConfig),
            ("logging", LoggingConfig),
        )
        built = {}
        for key, section_cls in sections:
            section = section_cls()
            for name, value in (data.get(key) or {}).items():
                if hasattr(section, name):
                    setattr(section, name, value)
                else:
                    logger.warning(f"Ignoring unknown configuration key: {key}.{name}")
            built[key] = section

        return cls(
            rewrite_settings=built["rewrite"],
            workspace_settings=built["workspace"],
            transaction_settings=built["transaction"],
            logging_settings=built["logging"],
        )

    @classmethod
    def from_file(cls, config_path: str) -> "LgtRefactorConfig":
        """Load configuration from a JSON or YAML file."""
        return cls.load(config_path=config_path, use_env=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "rewrite": asdict(self.rewrite_settings),
            "workspace": asdict(self.workspace_settings),
            "transaction": asdict(self.transaction_settings),
            "logging": asdict(self.logging_settings),
        }

    def to_file(self, config_path: str, format: str = "yaml") -> None:
        """
        Save configuration to file.

        Args:
            config_path: Path to save configuration
            format: File format ('json' or 'yaml')
        """
        config_data = self.to_dict()

        try:
            with open(config_path, "w", encoding="utf-8") as f:
                if format.lower() == "yaml":
                    yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
                else:
                    json.dump(config_data, f, indent=2)
        except OSError as e:
            raise ConfigurationError(f"Error saving configuration file: {e}")

    def validate(self) -> None:
        """Validate the current configuration."""
        ConfigurationManager.validate_config(self.to_dict())

    def get_config_summary(self) -> str:
        """Get a human-readable summary of the configuration."""
        rewrite = self.rewrite_settings
        workspace = self.workspace_settings
        transaction = self.transaction_settings
        return f"""lgtrefactor Configuration Summary:
Rewrite:
  - Mode placeholder: {rewrite.mode_placeholder}
  - Meta placeholder: {rewrite.meta_placeholder}
  - Argnames template: {rewrite.argname_template}
  - Arguments template: {rewrite.argument_template}

Workspace:
  - Include patterns: {', '.join(workspace.include_patterns)}
  - Excluded patterns: {len(workspace.exclude_patterns)} patterns
  - Encoding: {workspace.encoding}
  - Max file size: {workspace.max_file_size} bytes

Transaction:
  - Backup enabled: {transaction.backup_enabled}
  - Backup directory: {transaction.backup_directory}
  - Dry run: {transaction.dry_run}

Logging:
  - Level: {self.logging_settings.level}
"""


def load_config(config_path: Optional[str] = None, use_env: bool = True) -> LgtRefactorConfig:
    """
    Load configuration from file and/or environment variables.

    Args:
        config_path: Path to configuration file
        use_env: Whether to load environment variables

    Returns:
        LgtRefactorConfig: Loaded configuration
    """
    return LgtRefactorConfig.load(config_path=config_path, use_env=use_env)
