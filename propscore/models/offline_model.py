from typing import Dict, Any
from .base import RoiPredictor, RoiPrediction, ROI_NOT_CONFIGURED

class UnconfiguredRoiPredictor(RoiPredictor):
    """
    Used when no AI key is configured. Reports that explicitly instead of
    inventing a number.
    """
    async def predict(self, prop: Dict[str, Any]) -> RoiPrediction:
        return RoiPrediction(status=ROI_NOT_CONFIGURED, explanation="AI not configured")
