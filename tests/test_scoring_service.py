from types import SimpleNamespace

import httpx
import openai
import pytest
from fastapi import HTTPException

from propscore.data.base import StoreError
from propscore.data.store_client import MockStore
from propscore.models.base import RoiPrediction
from propscore.models.offline_model import UnconfiguredRoiPredictor
from propscore.models.openai_model import OpenAIRoiPredictor
from propscore.services.scoring_service import ScoringService

from conftest import property_rows


class StaticPredictor:
    def __init__(self, prediction):
        self.prediction = prediction
        self.calls = []

    async def predict(self, prop):
        self.calls.append(prop)
        return self.prediction


class FlakyUpsertStore(MockStore):
    """Fails the second upsert call only."""
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = 0

    async def upsert_scores(self, rows):
        self.calls += 1
        if self.calls == 2:
            raise StoreError("chunk rejected")
        await super().upsert_scores(rows)


async def test_recalculate_scores_all_active_properties(store):
    svc = ScoringService(store=store, predictor=UnconfiguredRoiPredictor())
    result = await svc.recalculate_all()

    assert result == {"success": True, "processed": 3, "failed_chunks": 0}
    assert set(store.scores) == {"villa-1", "apt-1", "house-1"}

    villa = store.scores["villa-1"]
    assert villa["views_total"] == 41
    assert villa["saves_total"] == 1
    assert villa["avg_dwell_seconds"] == 60
    for row in store.scores.values():
        for col in ("engagement_score", "investment_score", "livability_score", "luxury_score"):
            assert 0 <= row[col] <= 100

    # villa has the most of every signal except saves (tied), so it leads engagement
    assert villa["engagement_score"] == max(r["engagement_score"] for r in store.scores.values())
    assert store.scores["house-1"]["views_total"] == 0


async def test_recalculate_is_idempotent(store):
    svc = ScoringService(store=store, predictor=UnconfiguredRoiPredictor())
    await svc.recalculate_all()
    first = {pid: {k: v for k, v in row.items() if not k.endswith("_at")} for pid, row in store.scores.items()}
    await svc.recalculate_all()
    second = {pid: {k: v for k, v in row.items() if not k.endswith("_at")} for pid, row in store.scores.items()}
    assert first == second
    assert len(store.scores) == 3


async def test_failed_chunk_is_skipped_not_fatal():
    store = FlakyUpsertStore(properties=property_rows())
    svc = ScoringService(store=store, predictor=UnconfiguredRoiPredictor(), batch_size=1)
    result = await svc.recalculate_all()
    assert result == {"success": False, "processed": 2, "failed_chunks": 1}
    assert len(store.scores) == 2


async def test_store_read_failure_is_raised_with_cause():
    class DownStore(MockStore):
        async def list_signals(self):
            raise StoreError("connection reset")

    svc = ScoringService(store=DownStore(), predictor=UnconfiguredRoiPredictor())
    with pytest.raises(HTTPException) as info:
        await svc.recalculate_all()
    assert info.value.status_code == 502
    assert isinstance(info.value.__cause__, StoreError)


async def test_collection_orders_by_score_column(store):
    svc = ScoringService(store=store, predictor=UnconfiguredRoiPredictor())
    await svc.recalculate_all()

    luxury = await svc.get_collection("luxury_collection", limit=2)
    assert luxury["collection_type"] == "luxury_collection"
    assert [p["id"] for p in luxury["properties"]][0] == "villa-1"
    assert len(luxury["properties"]) == 2
    scores = [p["scores"]["luxury_score"] for p in luxury["properties"]]
    assert scores == sorted(scores, reverse=True)


async def test_unknown_collection_falls_back_to_engagement(store):
    svc = ScoringService(store=store, predictor=UnconfiguredRoiPredictor())
    await svc.recalculate_all()
    out = await svc.get_collection("whatever", limit=1)
    assert out["properties"][0]["id"] == "villa-1"


async def test_empty_collection(store):
    svc = ScoringService(store=store, predictor=UnconfiguredRoiPredictor())
    assert await svc.get_collection("trending") == {"collection_type": "trending", "properties": []}


async def test_predict_roi_persists_only_roi_columns(store):
    predictor = StaticPredictor(RoiPrediction(status="ok", predicted_roi=8.5, confidence=0.7,
                                              trend="rising", explanation="Strong rental demand"))
    svc = ScoringService(store=store, predictor=predictor)
    await svc.recalculate_all()
    before = dict(store.scores["villa-1"])

    out = await svc.predict_roi("villa-1")

    assert out["status"] == "ok" and out["predicted_roi"] == 8.5
    after = store.scores["villa-1"]
    assert after["predicted_roi"] == 8.5 and after["roi_confidence"] == 0.7
    for col in ("engagement_score", "investment_score", "livability_score", "luxury_score"):
        assert after[col] == before[col]
    assert "images" not in predictor.calls[0]


@pytest.mark.parametrize("status", ["rate_limited", "quota_exceeded", "not_configured", "unavailable"])
async def test_predict_roi_does_not_persist_failures(store, status):
    svc = ScoringService(store=store, predictor=StaticPredictor(RoiPrediction(status=status)))
    out = await svc.predict_roi("apt-1")
    assert out["status"] == status
    assert "apt-1" not in store.scores


async def test_predict_roi_unknown_property(store):
    svc = ScoringService(store=store, predictor=UnconfiguredRoiPredictor())
    with pytest.raises(HTTPException) as info:
        await svc.predict_roi("missing")
    assert info.value.status_code == 404


# ----- OpenAI-compatible predictor -----

def _response(status: int) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", "https://ai.example/v1/chat/completions"))


def fake_client(result=None, error=None):
    async def create(**kwargs):
        create.kwargs = kwargs
        if error is not None:
            raise error
        return result
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create))), create


def completion(arguments: str):
    call = SimpleNamespace(function=SimpleNamespace(name="predict_roi", arguments=arguments))
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(tool_calls=[call]))])


async def test_openai_predictor_parses_tool_call():
    client, create = fake_client(result=completion(
        '{"predicted_roi": 9.2, "confidence": 1.4, "trend": "rising", "explanation": "Tourism"}'
    ))
    pred = await OpenAIRoiPredictor(client=client, model="test-model").predict({"id": "p"})
    assert pred.status == "ok"
    assert pred.predicted_roi == 9.2
    assert pred.confidence == 1.0
    assert create.kwargs["tool_choice"]["function"]["name"] == "predict_roi"


async def test_openai_predictor_rate_limited():
    client, _ = fake_client(error=openai.RateLimitError("slow down", response=_response(429), body=None))
    pred = await OpenAIRoiPredictor(client=client, model="m").predict({})
    assert pred.status == "rate_limited"
    assert pred.predicted_roi is None


async def test_openai_predictor_quota_exceeded():
    client, _ = fake_client(error=openai.APIStatusError("pay up", response=_response(402), body=None))
    pred = await OpenAIRoiPredictor(client=client, model="m").predict({})
    assert pred.status == "quota_exceeded"


async def test_openai_predictor_other_errors_are_neutral():
    client, _ = fake_client(error=openai.APIStatusError("boom", response=_response(500), body=None))
    pred = await OpenAIRoiPredictor(client=client, model="m").predict({})
    assert (pred.status, pred.predicted_roi, pred.confidence) == ("unavailable", 0.0, 0.0)

    client, _ = fake_client(result=completion("not json"))
    pred = await OpenAIRoiPredictor(client=client, model="m").predict({})
    assert pred.status == "unavailable"
