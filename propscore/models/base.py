from dataclasses import dataclass, asdict
from typing import Protocol, Dict, Any

# Outcome of a prediction attempt; only "ok" carries a real number
ROI_OK = "ok"
ROI_RATE_LIMITED = "rate_limited"
ROI_QUOTA_EXCEEDED = "quota_exceeded"
ROI_NOT_CONFIGURED = "not_configured"
ROI_UNAVAILABLE = "unavailable"

@dataclass(frozen=True)
class RoiPrediction:
    status: str
    predicted_roi: float | None = None     # percent, e.g. 8.5
    confidence: float | None = None        # 0..1
    trend: str | None = None               # rising | stable | declining
    explanation: str | None = None

    @classmethod
    def neutral(cls, explanation: str = "Unable to predict") -> "RoiPrediction":
        return cls(status=ROI_UNAVAILABLE, predicted_roi=0.0, confidence=0.0,
                   trend="stable", explanation=explanation)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

class RoiPredictor(Protocol):
    async def predict(self, prop: Dict[str, Any]) -> RoiPrediction:
        """
        Forward-looking 12-month ROI for one property.
        Never raises: provider failures come back as a typed status.
        """
        ...
