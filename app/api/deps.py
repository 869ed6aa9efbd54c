"""
FastAPI dependencies for settings and the pricing config snapshot.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status

from app.config import Settings, get_settings
from app.models.pricing_config import PricingConfig
from app.services.config_store import PricingConfigError, get_pricing_config

logger = logging.getLogger(__name__)


def get_config_snapshot() -> PricingConfig:
    """
    Current pricing config snapshot.
    An unreadable configured file makes the pricing endpoints unavailable (503).
    """
    try:
        return get_pricing_config()
    except PricingConfigError as e:
        logger.warning(f"Pricing config unavailable: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=e.message,
        )


# Type aliases for cleaner dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]
PricingConfigDep = Annotated[PricingConfig, Depends(get_config_snapshot)]
