import os
from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv
from omegaconf import OmegaConf
from omegaconf.dictconfig import DictConfig

load_dotenv()
CONFIG_PATH = Path(os.getenv("CONFIG_PATH", Path(__file__).resolve().parents[1] / "config"))


def merge_configs(config_paths: List[Union[str, Path]]) -> DictConfig:
    """
    Merge multiple YAML configuration files with precedence. Later configs override earlier ones. Useful for applying overrides to base configs.

    Args:
        config_paths: List of paths to YAML config files. Later configs take precedence.

    Returns:
        DictConfig: Merged configuration object

    Raises:
        FileNotFoundError: If any config file doesn't exist

    Example:
        >>> config = merge_configs([CONFIG_PATH / "fetch.yaml", "fast.yaml"])
        >>> config.detail.enrich_batch_size
        20
    """
    if not config_paths:
        raise ValueError("config_paths is empty!")

    # Load first config as base
    merged = OmegaConf.load(config_paths[0])

    # Merge remaining configs with precedence
    for config_path in config_paths[1:]:
        config = OmegaConf.load(config_path)
        merged = OmegaConf.unsafe_merge(merged, config)

    return merged


def load_fetch_config(
    override_paths: Optional[List[Union[str, Path]]] = None,
    overrides: Optional[dict] = None,
) -> DictConfig:
    """
    Load fetch.yaml from CONFIG_PATH (the packaged harvester/config by default),
    then apply YAML override files and finally an in-memory dict of overrides
    (e.g. from the CLI or tests).
    """
    config = merge_configs([CONFIG_PATH / "fetch.yaml", *(override_paths or [])])
    if overrides:
        config = OmegaConf.merge(config, OmegaConf.create(overrides))
    return config
