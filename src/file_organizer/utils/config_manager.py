"""
Configuration management system for the file organization project.
Handles loading, validation, and merging of configurations from multiple sources.
"""

import os
import json
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, List, Mapping, Optional

from ..organization_logic.classifier import CustomCategory, order_custom_categories
from ..organization_logic.duplicates import KeepStrategy
from ..organization_logic.models import (
    DateFormat,
    DuplicateAction,
    OperationMode,
    OrganizeOptions,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "FILE_ORGANIZER_"


class ConfigManager:
    """Manage configuration from environment variables, files, and command line."""

    def __init__(
        self,
        config_file: Optional[Path] = None,
        cli_args: Optional[Mapping[str, Any]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Optional path to configuration file
            cli_args: Optional command line arguments, keyed by option name

        Raises:
            FileNotFoundError: If config_file is given but does not exist
            ValueError: If the merged configuration is invalid
        """
        self.config = self._load_default_config()

        if config_file:
            self._load_from_file(Path(config_file))

        # Override with environment variables
        self._load_from_env()

        # Override with command line arguments
        if cli_args:
            self._load_from_cli(cli_args)

        self._validate_config()

        logger.debug("Configuration loaded successfully")

    def _load_default_config(self) -> Dict[str, Any]:
        """Load default configuration."""
        return {
            "version": "1.0",
            "organization": {
                "operation": "preview",  # 'preview', 'create' or 'move'
                "by_date": False,
                "date_format": "year-month",
                "by_size": False,
                "size_threshold_mb": 100,
                "recursive": False,
                "max_depth": 10,
            },
            "duplicates": {
                "detect": False,
                "action": "skip",  # 'skip', 'rename', 'replace', 'keep-both'
                "summary": False,
                "min_size": 0,
                "keep": None,  # 'keep-oldest', 'keep-newest' or 'keep-largest'
            },
            "categories": {},
            "behavior": {
                "case_sensitive_extensions": False,
                "include_hidden_files": False,
            },
            "export": {
                "path": None,
                "format": "json",
                "move_log": None,
            },
            "logging": {
                "level": "INFO",
                "file": None,
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
        }

    def _load_from_file(self, config_file: Path):
        """Load configuration from file."""
        logger.info(f"Loading configuration from {config_file}")

        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")

        try:
            with open(config_file, "r") as f:
                if config_file.suffix == ".json":
                    file_config = json.load(f)
                elif config_file.suffix in (".yaml", ".yml"):
                    file_config = yaml.safe_load(f)
                else:
                    raise ValueError(f"Unsupported config file format: {config_file}")
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            logger.error(f"Error loading config file: {e}")
            raise ValueError(f"Invalid configuration file {config_file}: {e}") from e

        if file_config is None:
            return
        if not isinstance(file_config, dict):
            raise ValueError(f"Configuration file must contain a mapping: {config_file}")

        # The behavior section's max_depth predates organization.max_depth
        behavior = file_config.get("behavior", {})
        if isinstance(behavior, dict) and "max_depth" in behavior:
            file_config.setdefault("organization", {}).setdefault(
                "max_depth", behavior.pop("max_depth")
            )

        self._deep_merge(self.config, file_config)

    def _load_from_env(self):
        """Load configuration from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                config_path = key[len(ENV_PREFIX):].lower().split("__")
                self._set_nested_config(self.config, config_path, value)

    def _load_from_cli(self, cli_args: Mapping[str, Any]):
        """Load configuration from command line arguments."""
        # Map CLI arguments to configuration paths
        cli_mappings = {
            "operation": ["organization", "operation"],
            "by_date": ["organization", "by_date"],
            "date_format": ["organization", "date_format"],
            "by_size": ["organization", "by_size"],
            "size_threshold": ["organization", "size_threshold_mb"],
            "recursive": ["organization", "recursive"],
            "max_depth": ["organization", "max_depth"],
            "detect_dups": ["duplicates", "detect"],
            "dup_action": ["duplicates", "action"],
            "dup_summary": ["duplicates", "summary"],
            "min_size": ["duplicates", "min_size"],
            "keep": ["duplicates", "keep"],
            "include_hidden": ["behavior", "include_hidden_files"],
            "export": ["export", "path"],
            "export_format": ["export", "format"],
            "move_log": ["export", "move_log"],
            "log_level": ["logging", "level"],
            "log_file": ["logging", "file"],
        }

        for arg_name, config_path in cli_mappings.items():
            value = cli_args.get(arg_name)
            # Unset flags leave the file/env value alone
            if value is None or value is False:
                continue
            self._set_nested_config(self.config, config_path, value)

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]):
        """Deep merge update dictionary into base dictionary."""
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _set_nested_config(
        self, config_dict: Dict[str, Any], path: List[str], value: Any
    ):
        """Set a value in a nested dictionary using a path."""
        # Convert value to appropriate type if it's a string
        if isinstance(value, str):
            if value.lower() in ("true", "false"):
                value = value.lower() == "true"
            elif value.isdigit():
                value = int(value)
            elif value.replace(".", "", 1).isdigit() and value.count(".") == 1:
                value = float(value)
            elif value.startswith("[") and value.endswith("]"):
                try:
                    value = json.loads(value)
                except json.JSONDecodeError:
                    logger.warning(f"Could not parse list value for {'.'.join(path)}")

        current = config_dict
        for part in path[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[path[-1]] = value

    def _validate_config(self):
        """Validate configuration values."""
        errors = []
        organization = self.config["organization"]

        valid_operations = [mode.value for mode in OperationMode]
        if organization["operation"] not in valid_operations:
            errors.append(f"organization operation must be one of {valid_operations}")

        valid_formats = [fmt.value for fmt in DateFormat]
        if organization["date_format"] not in valid_formats:
            errors.append(f"date_format must be one of {valid_formats}")

        if not isinstance(organization["max_depth"], int) or organization["max_depth"] < 0:
            errors.append("max_depth must be a non-negative integer")

        threshold = organization["size_threshold_mb"]
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or threshold < 0:
            errors.append("size_threshold_mb must be a non-negative number")

        duplicates = self.config["duplicates"]
        valid_actions = [action.value for action in DuplicateAction]
        if duplicates["action"] not in valid_actions:
            errors.append(f"duplicate action must be one of {valid_actions}")

        min_size = duplicates.get("min_size", 0)
        if isinstance(min_size, bool) or not isinstance(min_size, int) or min_size < 0:
            errors.append("duplicates min_size must be a non-negative integer")

        valid_strategies = [strategy.value for strategy in KeepStrategy]
        if duplicates.get("keep") not in [None, *valid_strategies]:
            errors.append(f"duplicates keep must be one of {valid_strategies}")

        categories = self.config.get("categories") or {}
        if not isinstance(categories, dict):
            errors.append("categories must be a mapping of name to definition")
        else:
            for name, definition in categories.items():
                if not isinstance(definition, dict):
                    errors.append(f"category '{name}' must be a mapping")
                elif not isinstance(definition.get("extensions", []), (list, str)):
                    errors.append(f"category '{name}' extensions must be a list")

        if self.config["export"]["format"] not in ("json", "csv"):
            errors.append("export format must be 'json' or 'csv'")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if str(self.config["logging"]["level"]).upper() not in valid_log_levels:
            errors.append(f"logging level must be one of {valid_log_levels}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            path: Configuration path (e.g., 'organization.max_depth')
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        parts = path.split(".")
        current = self.config

        for part in parts:
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def set(self, path: str, value: Any):
        """
        Set configuration value using dot notation.

        Args:
            path: Configuration path (e.g., 'duplicates.detect')
            value: Value to set
        """
        self._set_nested_config(self.config, path.split("."), value)

    def save(self, filepath: Path, format: str = "json"):
        """
        Save configuration to file.

        Args:
            filepath: Path to save configuration
            format: File format ('json' or 'yaml')
        """
        logger.info(f"Saving configuration to {filepath}")

        with open(filepath, "w") as f:
            if format == "json":
                json.dump(self.config, f, indent=2)
            elif format in ("yaml", "yml"):
                yaml.safe_dump(self.config, f, default_flow_style=False)
            else:
                raise ValueError(f"Unsupported format: {format}")

    def get_custom_categories(self) -> List[CustomCategory]:
        """Custom categories ordered by priority, then declaration order."""
        categories = self.config.get("categories") or {}
        return order_custom_categories(
            CustomCategory.from_dict(name, definition)
            for name, definition in categories.items()
        )

    def get_operation_mode(self) -> OperationMode:
        return OperationMode(self.get("organization.operation"))

    def build_options(self) -> OrganizeOptions:
        """Build scan options from the merged configuration."""
        organization = self.config["organization"]
        duplicates = self.config["duplicates"]
        behavior = self.config["behavior"]

        return OrganizeOptions(
            recursive=bool(organization["recursive"]),
            max_depth=organization["max_depth"],
            by_date=bool(organization["by_date"]),
            date_format=DateFormat(organization["date_format"]),
            by_size=bool(organization["by_size"]),
            size_threshold_mb=organization["size_threshold_mb"],
            detect_duplicates=bool(duplicates["detect"] or duplicates["summary"]),
            duplicate_action=DuplicateAction(duplicates["action"]),
            include_hidden=bool(behavior.get("include_hidden_files", False)),
            case_sensitive_extensions=bool(
                behavior.get("case_sensitive_extensions", False)
            ),
        )

    def get_keep_strategy(self) -> Optional[KeepStrategy]:
        keep = self.get("duplicates.keep")
        return KeepStrategy(keep) if keep else None
