"""
Pipeline Configuration - Centralized Settings
==============================================

All configurable parameters in one place.
Supports environment variable overrides.

Usage:
    from iban_ocr.config import get_config
    config = get_config()
    print(config.storage.records_path)

Environment Variables:
    IBAN_PREPROCESS_STRATEGY=document
    IBAN_OCR_PROVIDER=tesseract
    IBAN_RECORDS_PATH=/data/records.json
    IBAN_LOG_LEVEL=DEBUG

Author: IBAN OCR Team
Date: October 2026
"""

import os
import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Tuple, Optional, Dict, Any, Union

import yaml

logger = logging.getLogger(__name__)


def _get_env_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            logger.warning(f"Invalid float for {key}: {value}, using default {default}")
    return default


def _get_env_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Invalid int for {key}: {value}, using default {default}")
    return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get bool from environment variable."""
    value = os.environ.get(key)
    if value is not None:
        return value.lower() in ('true', '1', 'yes', 'on')
    return default


def _get_env_str(key: str, default: str) -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default)


def _default_records_path() -> str:
    return str(Path.home() / '.iban_ocr' / 'records.json')


@dataclass
class PreprocessingConfig:
    """Image preprocessing configuration."""

    default_strategy: str = field(
        default_factory=lambda: _get_env_str('IBAN_PREPROCESS_STRATEGY', 'document')
    )
    target_width: int = field(
        default_factory=lambda: _get_env_int('IBAN_TARGET_WIDTH', 1280)
    )

    # CLAHE (Contrast Limited Adaptive Histogram Equalization)
    clahe_clip_limit: float = 2.0
    clahe_tile_size: Tuple[int, int] = (8, 8)

    # Document chain: sharpen -> gamma -> grayscale -> threshold -> median
    gamma: float = field(
        default_factory=lambda: _get_env_float('IBAN_GAMMA', 1.2)
    )
    binary_threshold: int = 128
    median_kernel_size: int = 3


@dataclass
class OCRConfig:
    """OCR provider configuration."""

    provider: str = field(
        default_factory=lambda: _get_env_str('IBAN_OCR_PROVIDER', 'paddleocr')
    )
    language: str = 'en'
    tesseract_lang: str = field(
        default_factory=lambda: _get_env_str('IBAN_TESSERACT_LANG', 'eng')
    )
    use_gpu: bool = field(
        default_factory=lambda: _get_env_bool('IBAN_USE_GPU', False)
    )
    det_db_box_thresh: float = 0.3


@dataclass
class StorageConfig:
    """Local record store configuration."""

    records_path: str = field(
        default_factory=lambda: _get_env_str('IBAN_RECORDS_PATH', _default_records_path())
    )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = field(
        default_factory=lambda: _get_env_str('IBAN_LOG_LEVEL', 'INFO')
    )
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_format: str = '%Y-%m-%d %H:%M:%S'

    # File logging (optional)
    log_file: Optional[str] = field(
        default_factory=lambda: os.environ.get('IBAN_LOG_FILE')
    )


@dataclass
class PipelineConfig:
    """Complete pipeline configuration."""

    preprocessing: PreprocessingConfig = field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    def save(self, path: Union[str, Path]):
        """Save configuration to a JSON or YAML file (chosen by extension)."""
        path = Path(path)
        data = self.to_dict()
        with open(path, 'w') as f:
            if path.suffix.lower() in ('.yaml', '.yml'):
                # safe_dump has no representer for tuples
                data = json.loads(json.dumps(data))
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(data, f, indent=2)

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'PipelineConfig':
        """
        Load configuration from a JSON or YAML file.

        Empty sections (``ocr:`` with nothing under it) keep their defaults.

        Raises:
            ValueError: If the file or one of its sections is not a mapping
        """
        path = Path(path)
        with open(path) as f:
            if path.suffix.lower() in ('.yaml', '.yml'):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping, got {type(data).__name__}")

        config = cls()

        for section in ('preprocessing', 'ocr', 'storage', 'logging'):
            values = data.get(section)
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ValueError(
                    f"Config section '{section}' must be a mapping, got {type(values).__name__}"
                )
            target = getattr(config, section)
            for key, value in values.items():
                if hasattr(target, key):
                    if key == 'clahe_tile_size':
                        value = tuple(value)
                    setattr(target, key, value)
                else:
                    logger.warning(f"Ignoring unknown config key {section}.{key}")

        return config


# Global configuration instance (singleton pattern)
_config: Optional[PipelineConfig] = None


def get_config() -> PipelineConfig:
    """
    Get the global configuration instance.

    Creates a new instance on first call, returns cached instance thereafter.
    """
    global _config
    if _config is None:
        _config = PipelineConfig()
        _setup_logging(_config.logging)
    return _config


def set_config(config: PipelineConfig):
    """Install a configuration (e.g. one loaded from a file) as the global instance."""
    global _config
    _config = config
    _setup_logging(config.logging)


def reset_config():
    """Reset configuration to defaults (useful for testing)."""
    global _config
    _config = None


def _setup_logging(config: LoggingConfig):
    """Configure logging based on settings."""
    level = getattr(logging, config.level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]

    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    logging.basicConfig(
        level=level,
        format=config.format,
        datefmt=config.date_format,
        handlers=handlers,
    )
