"""Typed configuration schemas for the region data loader."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional, Tuple

# VGG16 ImageNet channel means in BGR order, matching the stored images.
VGG_MEAN_BGR: Tuple[float, float, float] = (103.939, 116.779, 123.68)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _as_dict(value: Optional[Mapping[str, Any]], *, path: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"{path} must be a mapping, got {type(value)!r}")
    return value


def _reject_unknown_keys(schema_type: type, payload: Mapping[str, Any], *, path: str) -> None:
    allowed = {f.name for f in fields(schema_type)}
    unknown = sorted(str(k) for k in payload.keys() if k not in allowed)
    if unknown:
        raise ValueError(f"Unknown keys: {[f'{path}.{k}' for k in unknown]}")


def _parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value in (0, 1, 0.0, 1.0):
            return bool(value)
        raise ValueError(f"{field_name} must be boolean (0 or 1), got {value!r}.")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes", "y", "on"}:
            return True
        if normalized in {"false", "0", "no", "n", "off"}:
            return False
        raise ValueError(
            f"{field_name} string value '{value}' is not a recognized boolean representation."
        )
    raise TypeError(f"{field_name} must be a boolean value, got {type(value)!r}.")


def _parse_optional_float(value: Any, field_name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError(f"{field_name} must be numeric, got bool")
    try:
        out = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} must be numeric, got {value!r}") from exc
    if not math.isfinite(out):
        raise ValueError(f"{field_name} must be finite, got {value!r}")
    return out


def _parse_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise TypeError(f"{field_name} must be an integer, got bool")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{field_name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} must be an integer, got {value!r}") from exc


def _parse_optional_path(value: Any, field_name: str) -> Optional[str]:
    if value is None or value is False:
        return None
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string path, got {type(value)!r}")
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class LoaderConfig:
    """Options of ``DenseCapDataLoader``; mirrors the ``data`` YAML section."""

    h5_file: str
    json_file: str
    h5_read_all: bool = False
    use_split_indicator: bool = True
    train_frac: Optional[float] = None
    val_frac: Optional[float] = None
    debug_max_train_images: int = -1
    proposal_regions_h5: Optional[str] = None
    pixel_mean: Tuple[float, ...] = VGG_MEAN_BGR
    seed: Optional[int] = None
    strict_bounds: bool = False
    validate_filenames: bool = True

    def __post_init__(self) -> None:
        if not self.h5_file:
            raise ValueError("data.h5_file must be provided")
        if not self.json_file:
            raise ValueError("data.json_file must be provided")
        if not self.pixel_mean:
            raise ValueError("data.pixel_mean must list one value per image channel")
        object.__setattr__(self, "pixel_mean", tuple(float(v) for v in self.pixel_mean))

        if self.use_split_indicator:
            return
        if self.train_frac is None or self.val_frac is None:
            raise ValueError(
                "data.train_frac and data.val_frac are required when data.use_split_indicator is false"
            )
        if not 0.0 <= self.train_frac <= 1.0:
            raise ValueError(f"data.train_frac must be in [0, 1], got {self.train_frac}")
        if not 0.0 <= self.val_frac <= 1.0:
            raise ValueError(f"data.val_frac must be in [0, 1], got {self.val_frac}")
        if self.train_frac + self.val_frac > 1.0:
            raise ValueError(
                "data.train_frac + data.val_frac must be <= 1 (test takes the remainder), "
                f"got {self.train_frac} + {self.val_frac}"
            )

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "LoaderConfig":
        data = _as_dict(payload, path="data")
        _reject_unknown_keys(cls, data, path="data")

        pixel_mean_raw = data.get("pixel_mean", VGG_MEAN_BGR)
        if not isinstance(pixel_mean_raw, (list, tuple)):
            raise TypeError("data.pixel_mean must be a list of numbers")
        pixel_mean = tuple(
            _parse_optional_float(v, f"data.pixel_mean[{i}]") for i, v in enumerate(pixel_mean_raw)
        )
        if any(v is None for v in pixel_mean):
            raise TypeError("data.pixel_mean entries must be numbers, got null")

        seed_raw = data.get("seed")
        return cls(
            h5_file=_parse_optional_path(data.get("h5_file"), "data.h5_file") or "",
            json_file=_parse_optional_path(data.get("json_file"), "data.json_file") or "",
            h5_read_all=_parse_bool(data.get("h5_read_all", False), "data.h5_read_all"),
            use_split_indicator=_parse_bool(
                data.get("use_split_indicator", True), "data.use_split_indicator"
            ),
            train_frac=_parse_optional_float(data.get("train_frac"), "data.train_frac"),
            val_frac=_parse_optional_float(data.get("val_frac"), "data.val_frac"),
            debug_max_train_images=_parse_int(
                data.get("debug_max_train_images", -1), "data.debug_max_train_images"
            ),
            proposal_regions_h5=_parse_optional_path(
                data.get("proposal_regions_h5"), "data.proposal_regions_h5"
            ),
            pixel_mean=pixel_mean,
            seed=None if seed_raw is None else _parse_int(seed_raw, "data.seed"),
            strict_bounds=_parse_bool(data.get("strict_bounds", False), "data.strict_bounds"),
            validate_filenames=_parse_bool(
                data.get("validate_filenames", True), "data.validate_filenames"
            ),
        )


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    output_dir: Optional[str] = None
    filename: str = "regioncap.log"

    def __post_init__(self) -> None:
        level = str(self.level).strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}, got {self.level!r}")
        object.__setattr__(self, "level", level)

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "LoggingConfig":
        data = _as_dict(payload, path="logging")
        _reject_unknown_keys(cls, data, path="logging")
        return cls(
            level=data.get("level", cls.level),
            output_dir=_parse_optional_path(data.get("output_dir"), "logging.output_dir"),
            filename=str(data.get("filename") or cls.filename),
        )


@dataclass(frozen=True)
class RegionCapConfig:
    data: LoaderConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_mapping(cls, payload: Optional[Mapping[str, Any]]) -> "RegionCapConfig":
        root = _as_dict(payload, path="config")
        unknown = sorted(str(k) for k in root.keys() if k not in {"data", "logging"})
        if unknown:
            raise ValueError(f"Unknown keys: {unknown}")
        if root.get("data") is None:
            raise ValueError("config must define a 'data' section")
        return cls(
            data=LoaderConfig.from_mapping(root.get("data")),
            logging=LoggingConfig.from_mapping(root.get("logging")),
        )


__all__ = ["VGG_MEAN_BGR", "LoaderConfig", "LoggingConfig", "RegionCapConfig"]
