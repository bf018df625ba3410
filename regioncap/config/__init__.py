from .loader import ConfigLoader
from .schema import VGG_MEAN_BGR, LoaderConfig, LoggingConfig, RegionCapConfig

__all__ = [
    "ConfigLoader",
    "LoaderConfig",
    "LoggingConfig",
    "RegionCapConfig",
    "VGG_MEAN_BGR",
]
