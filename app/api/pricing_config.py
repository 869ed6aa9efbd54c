"""
Pricing config endpoints - inspect and reload the normalized config snapshot.
"""

from fastapi import APIRouter, HTTPException, status

from app.api.deps import PricingConfigDep
from app.models.pricing_config import PricingConfig
from app.services.config_store import PricingConfigError, reload_pricing_config

router = APIRouter()


@router.get("", response_model=PricingConfig)
async def read_pricing_config(config: PricingConfigDep):
    """Current snapshot, with every legacy field name already normalized."""
    return config


@router.post("/reload", response_model=PricingConfig)
async def reload_config():
    """Drop the cached snapshot and load the config file again."""
    try:
        return reload_pricing_config()
    except PricingConfigError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=e.message,
        )
