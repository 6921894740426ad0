"""Utility modules."""

from .config_loader import ConfigLoader, FusionConfig, load_config, load_fusion_config
from .logger import TTCRecorder, get_logger, setup_logger

__all__ = [
    "ConfigLoader",
    "FusionConfig",
    "load_config",
    "load_fusion_config",
    "setup_logger",
    "get_logger",
    "TTCRecorder",
]
