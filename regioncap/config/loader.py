"""YAML config loader for the region data loader."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml

from regioncap.utils import get_logger

from .schema import RegionCapConfig

logger = get_logger(__name__)


class ConfigLoader:
    """Load YAML configs (with ``extends`` inheritance) into ``RegionCapConfig``."""

    @staticmethod
    def load_yaml(config_path: str) -> Dict[str, Any]:
        """Load YAML file into dictionary.

        Args:
            config_path: Path to YAML config file

        Returns:
            Configuration dictionary (empty for an empty file)
        """
        path = Path(config_path)
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ValueError(f"Config root must be a mapping: {path}")
        return config

    @staticmethod
    def _normalize_to_list(value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        return [str(value)]

    @staticmethod
    def load_yaml_with_extends(
        config_path: str, _visited: Optional[Set[str]] = None
    ) -> Dict[str, Any]:
        """Load YAML and resolve inheritance via 'extends'/'inherit'.

        Bases are paths relative to the file that names them and are merged in
        order; the current file has the highest precedence. Cycles raise
        ValueError.
        """
        abs_path = str(Path(config_path).resolve())
        visited: Set[str] = set(_visited or set())
        if abs_path in visited:
            raise ValueError(f"Cyclic config inheritance detected at: {abs_path}")
        visited.add(abs_path)

        current_dir = Path(abs_path).parent
        config = ConfigLoader.load_yaml(abs_path)

        extends_value = config.pop("extends", None)
        if extends_value is None:
            extends_value = config.pop("inherit", None)

        merged_base: Dict[str, Any] = {}
        for base_ref in ConfigLoader._normalize_to_list(extends_value):
            base_path = Path(base_ref)
            if not base_path.is_absolute():
                base_path = (current_dir / base_path).resolve()
            base_cfg = ConfigLoader.load_yaml_with_extends(str(base_path), visited)
            merged_base = ConfigLoader.merge_configs(merged_base, base_cfg)

        return ConfigLoader.merge_configs(merged_base, config)

    @staticmethod
    def merge_configs(base: Dict, override: Dict) -> Dict:
        """Deep merge two config dictionaries; ``override`` wins on conflicts."""
        merged = base.copy()
        for key, value in override.items():
            if (
                isinstance(value, dict)
                and key in merged
                and isinstance(merged[key], dict)
            ):
                merged[key] = ConfigLoader.merge_configs(merged[key], value)
            else:
                merged[key] = value
        return merged

    @staticmethod
    def _resolve_data_paths(config: Dict[str, Any], config_dir: Path) -> None:
        data = config.get("data")
        if not isinstance(data, dict):
            return
        for key in ("h5_file", "json_file", "proposal_regions_h5"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                path = Path(value)
                if not path.is_absolute():
                    data[key] = str((config_dir / path).resolve())

    @staticmethod
    def load_config(config_path: str) -> RegionCapConfig:
        """Load a YAML file into a validated ``RegionCapConfig``.

        Relative data paths are resolved against the directory of
        ``config_path``.
        """
        raw = ConfigLoader.load_yaml_with_extends(config_path)
        ConfigLoader._resolve_data_paths(raw, Path(config_path).resolve().parent)
        config = RegionCapConfig.from_mapping(raw)
        logger.info("Loaded config %s", config_path)
        return config
