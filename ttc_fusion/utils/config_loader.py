"""Configuration loading utilities."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


@dataclass
class FusionConfig:
    """
    Parameters for one run of the TTC fusion pipeline.

    Attributes:
        shrink_factor: Fractional ROI inset for LiDAR association, in [0, 1).
        frame_rate: Sensor frame rate in Hz.
        min_distance_threshold: Minimum current-frame keypoint separation (px)
            for a pair to enter the camera TTC median.
        outlier_displacement_factor: Matches moving at least this multiple of
            the box's mean displacement are discarded.
        outlier_mean_percent: LiDAR points deviating at least this fraction of
            the mean range are discarded.
        verbose: Echo every TTC estimate at INFO level.
        log_level: Level for the package logger.
        log_file: Optional log file for the package logger.
        ttc_log_file: Optional file receiving one ``"<ttc>;"`` line per estimate.
        crop: Ego-lane crop applied to raw LiDAR points.
    """

    shrink_factor: float = 0.10
    frame_rate: float = 10.0
    min_distance_threshold: float = 90.0
    outlier_displacement_factor: float = 2.0
    outlier_mean_percent: float = 0.03
    verbose: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None
    ttc_log_file: Optional[str] = None
    crop: Dict[str, float] = field(default_factory=lambda: {
        "min_x": 2.0,
        "max_x": 20.0,
        "max_y": 2.0,
        "min_z": -1.5,
        "max_z": -0.9,
        "min_r": 0.1,
    })

    def __post_init__(self):
        """Validate value ranges."""
        if not 0.0 <= self.shrink_factor < 1.0:
            raise ValueError(f"shrink_factor must be in [0, 1), got {self.shrink_factor}")
        if self.frame_rate <= 0:
            raise ValueError(f"frame_rate must be positive, got {self.frame_rate}")
        if self.min_distance_threshold < 0:
            raise ValueError(
                f"min_distance_threshold must be non-negative, got {self.min_distance_threshold}"
            )
        if self.outlier_displacement_factor <= 0:
            raise ValueError(
                f"outlier_displacement_factor must be positive, got {self.outlier_displacement_factor}"
            )
        if not 0.0 < self.outlier_mean_percent < 1.0:
            raise ValueError(
                f"outlier_mean_percent must be in (0, 1), got {self.outlier_mean_percent}"
            )

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "FusionConfig":
        """
        Build from a nested configuration dictionary.

        Expected layout (all sections optional)::

            fusion: {shrink_factor, frame_rate}
            camera: {min_distance_threshold, outlier_displacement_factor}
            lidar: {outlier_mean_percent, crop: {...}}
            logging: {level, file, ttc_file, verbose}

        Args:
            config: Configuration dictionary, e.g. from :func:`load_config`.

        Returns:
            FusionConfig instance.
        """
        defaults = cls()
        crop = dict(defaults.crop)
        crop.update(get_nested(config, "lidar.crop", {}) or {})

        return cls(
            shrink_factor=float(get_nested(config, "fusion.shrink_factor", defaults.shrink_factor)),
            frame_rate=float(get_nested(config, "fusion.frame_rate", defaults.frame_rate)),
            min_distance_threshold=float(
                get_nested(config, "camera.min_distance_threshold", defaults.min_distance_threshold)
            ),
            outlier_displacement_factor=float(
                get_nested(
                    config, "camera.outlier_displacement_factor", defaults.outlier_displacement_factor
                )
            ),
            outlier_mean_percent=float(
                get_nested(config, "lidar.outlier_mean_percent", defaults.outlier_mean_percent)
            ),
            verbose=bool(get_nested(config, "logging.verbose", defaults.verbose)),
            log_level=str(get_nested(config, "logging.level", defaults.log_level)),
            log_file=get_nested(config, "logging.file", defaults.log_file),
            ttc_log_file=get_nested(config, "logging.ttc_file", defaults.ttc_log_file),
            crop={k: float(v) for k, v in crop.items()},
        )


class ConfigLoader:
    """Load and manage YAML configurations."""

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize config loader.

        Args:
            config_dir: Default directory for config files.
        """
        self.config_dir = Path(config_dir) if config_dir else Path("configs")
        self._cache: Dict[str, Dict] = {}

    def load(
        self,
        config_path: Union[str, Path],
        use_cache: bool = True,
    ) -> Dict[str, Any]:
        """
        Load configuration from YAML file.

        Relative paths that do not exist as given are looked up in
        ``config_dir``.

        Args:
            config_path: Path to config file.
            use_cache: Whether to use cached config.

        Returns:
            Configuration dictionary.

        Raises:
            FileNotFoundError: If the file cannot be found.
        """
        config_path = Path(config_path)

        if not config_path.is_absolute() and not config_path.exists():
            config_path = self.config_dir / config_path

        cache_key = str(config_path)

        if use_cache and cache_key in self._cache:
            return self._cache[cache_key].copy()

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r") as f:
            config = yaml.safe_load(f) or {}

        if not isinstance(config, dict):
            raise ValueError(f"Config root must be a mapping: {config_path}")

        if use_cache:
            self._cache[cache_key] = config

        return config.copy()

    def merge(
        self,
        base: Dict[str, Any],
        override: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Deep merge two configurations.

        Args:
            base: Base configuration.
            override: Override configuration.

        Returns:
            Merged configuration.
        """
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self.merge(result[key], value)
            else:
                result[key] = value

        return result

    def save(
        self,
        config: Dict[str, Any],
        path: Union[str, Path],
    ) -> None:
        """
        Save configuration to YAML file.

        Args:
            config: Configuration dictionary.
            path: Output file path.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def load_config(
    config_path: Union[str, Path],
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to config file.
        overrides: Optional overrides to apply.

    Returns:
        Configuration dictionary.
    """
    loader = ConfigLoader()
    config = loader.load(config_path)

    if overrides:
        config = loader.merge(config, overrides)

    return config


def load_fusion_config(
    config_path: Union[str, Path],
    overrides: Optional[Dict[str, Any]] = None,
) -> FusionConfig:
    """Load a YAML file straight into a :class:`FusionConfig`."""
    return FusionConfig.from_dict(load_config(config_path, overrides))


def get_nested(
    config: Dict[str, Any],
    key: str,
    default: Any = None,
) -> Any:
    """
    Get nested config value using dot notation.

    Args:
        config: Configuration dictionary.
        key: Dot-separated key (e.g., 'fusion.frame_rate').
        default: Default value if key not found.

    Returns:
        Config value or default.
    """
    value = config

    for k in key.split("."):
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default

    return value
