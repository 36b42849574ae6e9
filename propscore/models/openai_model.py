"""OpenAI-compatible ROI predictor."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

import openai

from .base import (
    RoiPrediction, RoiPredictor, ROI_OK, ROI_QUOTA_EXCEEDED, ROI_RATE_LIMITED,
)
from ..core.config import settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a real estate investment analyst specializing in Indonesian property "
    "markets (Bali, Jakarta, Lombok). Predict ROI based on property data and market trends."
)

PREDICT_ROI_TOOL = {
    "type": "function",
    "function": {
        "name": "predict_roi",
        "description": "Return ROI prediction for property",
        "parameters": {
            "type": "object",
            "properties": {
                "predicted_roi": {"type": "number", "description": "Predicted ROI percentage (e.g. 8.5)"},
                "confidence": {"type": "number", "description": "Confidence 0-1"},
                "trend": {"type": "string", "enum": ["rising", "stable", "declining"]},
                "explanation": {"type": "string", "description": "One-line explanation"},
            },
            "required": ["predicted_roi", "confidence", "trend", "explanation"],
            "additionalProperties": False,
        },
    },
}


class OpenAIRoiPredictor(RoiPredictor):
    def __init__(self, client: openai.AsyncOpenAI | None = None, model: str | None = None):
        # No in-band retries: 429/402 must reach the caller as-is
        self.client = client or openai.AsyncOpenAI(
            api_key=settings.AI_API_KEY,
            base_url=settings.AI_BASE_URL,
            timeout=settings.AI_TIMEOUT_SECONDS,
            max_retries=0,
        )
        self.model = model or settings.AI_MODEL

    async def predict(self, prop: Dict[str, Any]) -> RoiPrediction:
        """Ask the model for a 12-month ROI through a forced tool call.

        Parameters
        ----------
        prop: Dict[str, Any]
            Property attributes sent verbatim as JSON.

        Returns
        -------
        RoiPrediction
            ``ok`` with the parsed arguments, ``rate_limited`` / ``quota_exceeded``
            on HTTP 429 / 402, otherwise a neutral zero-confidence prediction.
        """
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": "Predict 12-month ROI for this property:\n"
                                                + json.dumps(prop, indent=2, default=str)},
                ],
                tools=[PREDICT_ROI_TOOL],
                tool_choice={"type": "function", "function": {"name": "predict_roi"}},
            )
        except openai.RateLimitError:
            logger.warning("ROI provider rate limited")
            return RoiPrediction(status=ROI_RATE_LIMITED)
        except openai.APIStatusError as exc:
            if exc.status_code == 402:
                logger.warning("ROI provider quota exceeded")
                return RoiPrediction(status=ROI_QUOTA_EXCEEDED)
            logger.error("ROI provider error", extra={"ctx": {"status": exc.status_code}})
            return RoiPrediction.neutral()
        except openai.OpenAIError as exc:
            logger.error("ROI provider unreachable", extra={"ctx": {"error": str(exc)}})
            return RoiPrediction.neutral()

        try:
            call = completion.choices[0].message.tool_calls[0]
            data = json.loads(call.function.arguments)
            return RoiPrediction(
                status=ROI_OK,
                predicted_roi=float(data["predicted_roi"]),
                confidence=min(1.0, max(0.0, float(data["confidence"]))),
                trend=data.get("trend") if data.get("trend") in ("rising", "stable", "declining") else "stable",
                explanation=str(data.get("explanation") or ""),
            )
        except (IndexError, KeyError, TypeError, ValueError) as exc:
            logger.error("Failed to parse ROI prediction", extra={"ctx": {"error": str(exc)}})
            return RoiPrediction.neutral()
