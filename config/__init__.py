"""
Configuration module for GNN node classification.

This module provides configuration loading and validation utilities.
"""

from pathlib import Path
import yaml
from typing import Dict, Any, Optional

REQUIRED_SECTIONS = ('dataset', 'model', 'training', 'export', 'verification', 'paths')


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, loads default.yaml

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        config_path = Path(__file__).parent / "default.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    validate_config(config)
    return config


def validate_config(config: Dict[str, Any]) -> None:
    """
    Check that all top-level sections are present.

    Raises:
        ValueError: If a section is missing or not a mapping
    """
    for section in REQUIRED_SECTIONS:
        if not isinstance(config.get(section), dict):
            raise ValueError(f"Config section '{section}' missing or not a mapping")


def get_default_config() -> Dict[str, Any]:
    """Get default configuration dictionary."""
    return load_config()


__all__ = ['load_config', 'validate_config', 'get_default_config']
