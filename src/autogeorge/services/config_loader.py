"""Configuration loading from YAML files."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from autogeorge.core.config import PromptConfig, SourceConfig
from autogeorge.utils.exceptions import ConfigurationError

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"


def load_yaml(file_path: Path) -> Dict[str, Any]:
    """Load YAML file.

    Args:
        file_path: Path to YAML file

    Returns:
        Parsed YAML data

    Raises:
        ConfigurationError: If file doesn't exist or is invalid
    """
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file not found: {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            if data is None:
                return {}
            if not isinstance(data, dict):
                raise ConfigurationError(f"Expected a mapping in {file_path}")
            return data
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {file_path}: {e}") from e


def load_prompt_config(
    prompt_name: str, prompts_dir: Optional[Path] = None
) -> PromptConfig:
    """Load prompt configuration from YAML.

    Args:
        prompt_name: Name of prompt file (without .yaml extension)
        prompts_dir: Prompt directory, defaults to the packaged prompts

    Returns:
        PromptConfig object
    """
    data = load_yaml((prompts_dir or PROMPTS_DIR) / f"{prompt_name}.yaml")
    try:
        return PromptConfig(**data)
    except Exception as e:
        raise ConfigurationError(f"Invalid prompt configuration: {prompt_name}: {e}") from e


def load_prompt_templates(
    prompt_name: str, prompts_dir: Optional[Path] = None
) -> Dict[str, str]:
    """Load a prompt file holding several named templates."""
    data = load_yaml((prompts_dir or PROMPTS_DIR) / f"{prompt_name}.yaml")
    bad = [key for key, value in data.items() if not isinstance(value, str)]
    if bad:
        raise ConfigurationError(
            f"Invalid prompt templates in {prompt_name}: {', '.join(bad)} must be strings"
        )
    return data


def load_sources_config(file_path: Path) -> List[SourceConfig]:
    """Load feed sources from a YAML file with a top-level `sources` list.

    Args:
        file_path: Path to sources YAML

    Returns:
        List of SourceConfig objects
    """
    data = load_yaml(file_path)

    sources = []
    for source_data in data.get("sources", []):
        try:
            sources.append(SourceConfig(**source_data))
        except Exception as e:
            raise ConfigurationError(
                f"Invalid source configuration: {source_data.get('name', 'unknown')}: {e}"
            ) from e

    return sources
