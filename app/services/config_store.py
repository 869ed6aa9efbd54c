"""
Pricing config store - loads one immutable PricingConfig snapshot per process.

Admin edits happen elsewhere; call reload_pricing_config() to swap in a fresh
snapshot in one step.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Union

from app.config import DEFAULT_PRICING_FILE, get_settings
from app.models.pricing_config import PricingConfig

logger = logging.getLogger(__name__)


class PricingConfigError(Exception):
    """Raised when an explicitly configured pricing file cannot be used."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = str(path)
        self.reason = reason
        self.message = f"Pricing config {self.path}: {reason}"
        super().__init__(self.message)


def _read_json(path: Path) -> Any:
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def load_pricing_config(path: Optional[Union[str, Path]] = None) -> PricingConfig:
    """
    Parse a PricingConfig from JSON.

    An explicit `path` must exist and hold a JSON object, else PricingConfigError.
    Without one, the bundled default file is used; if that is unusable the
    built-in defaults are returned.
    """
    if path:
        path = Path(path)
        try:
            data = _read_json(path)
        except (OSError, json.JSONDecodeError) as e:
            raise PricingConfigError(path, str(e)) from e
        if not isinstance(data, dict):
            raise PricingConfigError(path, "expected a JSON object")
        logger.info(f"Loaded pricing config from {path}")
        return PricingConfig.model_validate(data)

    try:
        data = _read_json(DEFAULT_PRICING_FILE)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Bundled pricing config unusable ({e}), using built-in defaults")
        return PricingConfig()
    if not isinstance(data, dict):
        logger.warning("Bundled pricing config is not a JSON object, using built-in defaults")
        return PricingConfig()
    logger.info(f"Loaded bundled pricing config from {DEFAULT_PRICING_FILE}")
    return PricingConfig.model_validate(data)


@lru_cache()
def get_pricing_config() -> PricingConfig:
    """Get the cached config snapshot."""
    return load_pricing_config(get_settings().pricing_config_path or None)


def reload_pricing_config() -> PricingConfig:
    get_pricing_config.cache_clear()
    return get_pricing_config()
