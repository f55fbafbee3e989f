from typing import Any, Dict, Optional
from pydantic import BaseModel


class RecommendationRequest(BaseModel):
    """Body of POST /automation/recommendation"""
    recommendation: Optional[Dict[str, Any]] = None
    walletId: Optional[str] = None
    forceRebalance: bool = False


class ConfigureRequest(BaseModel):
    """Body of POST /automation/configure; validated by the service, not the schema"""
    rebalanceThreshold: Any = None


class ControlResponse(BaseModel):
    success: bool
    message: str


class StatusResponse(BaseModel):
    isRunning: bool
    lastRebalance: Optional[str] = None
    rebalanceThreshold: float
