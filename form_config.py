import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError

from models import FormConfig

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the form configuration file cannot be read or parsed."""


def default_config_path() -> Path:
    config_path = Path("/config/config.yml")
    if not config_path.exists():
        config_path = Path("config/config.yml")
    return config_path


def expand_env_vars(value):
    """Replace ``${NAME}`` strings anywhere in the parsed YAML with $NAME from the environment."""
    if isinstance(value, dict):
        return {key: expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    if not (isinstance(value, str) and value.startswith("${") and value.endswith("}")):
        return value

    name = value[2:-1]
    if name not in os.environ:
        # Left as-is so the problem shows up in the mail headers
        logger.warning("Environment variable %s is not set", name)
        return value
    return os.environ[name]


def load_forms(path: Union[str, Path]) -> Dict[str, Dict[str, Any]]:
    """Read the YAML file and return the raw ``forms`` mapping, env vars expanded."""
    try:
        with open(path, "r") as f:
            config_raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    if config_raw is None:
        return {}
    if not isinstance(config_raw, dict):
        raise ConfigError(f"{path}: top level must be a mapping")

    forms = config_raw.get("forms") or {}
    if not isinstance(forms, dict):
        raise ConfigError(f"{path}: 'forms' must be a mapping of form id to settings")
    return {str(k): v for k, v in expand_env_vars(forms).items()}


class YamlConfigGetter:
    """
    Form configuration lookup backed by a YAML file.

    The file is re-read on every call so edits take effect without a
    restart. When a re-read fails the last good contents are used.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._forms: Dict[str, Dict[str, Any]] = {}

    def __call__(self, form_id: str) -> Optional[FormConfig]:
        try:
            self._forms = load_forms(self.path)
        except ConfigError as e:
            logger.error("❌ Cannot re-read config: %s", e)
        forms = self._forms

        form_data = forms.get(form_id)
        if not isinstance(form_data, dict) or not form_data.get("domain"):
            logger.warning("Not in config: forms.%s", form_id)
            return None

        try:
            return FormConfig.model_validate(form_data)
        except ValidationError as e:
            logger.error("❌ Invalid configuration for forms.%s: %s", form_id, e)
            return None
