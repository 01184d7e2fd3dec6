"""
Configuration Manager Module
Handles loading and accessing application configuration from YAML files and environment variables.
"""

import os
import re
from pathlib import Path
from typing import Dict, List

import yaml
from dotenv import load_dotenv


DEFAULT_SPRINT_FIELDS = ['customfield_10020', 'customfield_10010', 'sprint', 'sprints']
DEFAULT_STORY_POINTS_FIELDS = ['customfield_10016']


class ConfigManager:
    """Manages application configuration from YAML files and environment variables."""

    _instance = None
    _config: Dict = None

    def __new__(cls):
        """Singleton pattern for configuration."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize configuration if not already loaded."""
        if self._config is None:
            self._load_configuration()

    def _load_configuration(self) -> None:
        """Load the main configuration file."""
        # Load environment variables from .env file
        load_dotenv()

        self._config_dir = self._find_config_dir()

        config_path = self._config_dir / 'config.yaml'
        self._config = self._load_yaml_with_env(config_path)

    def _find_config_dir(self) -> Path:
        """Find the configuration directory."""
        env_config_dir = os.getenv('CONFIG_DIR')
        if env_config_dir:
            return Path(env_config_dir)

        possible_paths = [
            Path(__file__).parent.parent / 'config',  # Relative to the package
            Path.cwd() / 'config',
            Path('/app/config'),  # Docker container
        ]

        for path in possible_paths:
            if path.exists():
                return path

        raise FileNotFoundError("Configuration directory not found")

    def _load_yaml_with_env(self, file_path: Path) -> Dict:
        """
        Load YAML file with environment variable substitution.

        Supports ${VAR_NAME} and ${VAR_NAME:-default} syntax.
        """
        if not file_path.exists():
            return {}

        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read()

        content = self._substitute_env_vars(content)

        return yaml.safe_load(content) or {}

    def _substitute_env_vars(self, content: str) -> str:
        """
        Substitute environment variables in string.

        Supports:
        - ${VAR_NAME} - Required variable
        - ${VAR_NAME:-default} - Variable with default value
        """
        pattern = r'\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}'

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2)

            value = os.getenv(var_name)
            if value is not None:
                return value
            elif default_value is not None:
                return default_value
            else:
                return match.group(0)  # Leave unresolved placeholders untouched

        return re.sub(pattern, replacer, content)

    # ========================================
    # Configuration Getters
    # ========================================

    def get_jira_config(self) -> Dict:
        """Get Jira API configuration."""
        return self._config.get('jira', {})

    def get_database_config(self) -> Dict:
        """Get database configuration."""
        return self._config.get('database', {})

    def get_sync_config(self) -> Dict:
        """Get synchronization configuration."""
        return self._config.get('sync', {})

    def get_logging_config(self) -> Dict:
        """Get logging configuration."""
        return self._config.get('logging', {})

    def get_scheduler_config(self) -> Dict:
        """Get scheduler configuration."""
        return self._config.get('scheduler', {})

    # ========================================
    # Field Mapping Getters
    # ========================================

    def get_sprint_fields(self) -> List[str]:
        """Get the ordered list of issue fields that may carry a sprint reference."""
        return self.get_sync_config().get('sprint_fields') or list(DEFAULT_SPRINT_FIELDS)

    def get_story_points_fields(self) -> List[str]:
        """Get the ordered list of issue fields that may carry story points."""
        return self.get_sync_config().get('story_points_fields') or list(DEFAULT_STORY_POINTS_FIELDS)

    def get(self, path: str, default=None):
        """
        Look up a value by dotted path, e.g. ``get('sync.page_size', 50)``.

        Empty values (an unset ``${VAR:-}``) count as missing.
        """
        value = self._config
        for part in path.split('.'):
            if not isinstance(value, dict):
                return default
            value = value.get(part)
        return default if value in (None, '') else value

    def missing_jira_settings(self) -> List[str]:
        """
        List the Jira settings that must be filled in before syncing.

        Returns:
            Dotted names of the missing settings, empty when complete
        """
        required = ['jira.url']
        if str(self.get('jira.auth_type', 'basic')).lower() == 'bearer':
            required.append('jira.bearer_token')
        else:
            required += ['jira.username', 'jira.api_token']

        return [
            name for name in required
            if self.get(name) is None or '${' in str(self.get(name))
        ]

    def reload(self) -> None:
        """Reload configuration from files."""
        self._config = None
        self._load_configuration()


# Convenience function
def get_config() -> ConfigManager:
    """Get the singleton configuration manager instance."""
    return ConfigManager()
