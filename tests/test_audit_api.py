"""
tests/test_audit_api.py

HTTP-level tests for the /api/analyze router using FastAPI's TestClient.
The orchestrator is replaced through dependency_overrides with one wired to
an in-memory store and fake adapters.

Coverage
--------
- POST create: validation errors, accepted response
- GET poll: unknown id, first poll starts the pipeline, completion
- PATCH enrichment: competitors and socials
- POST paid: token check, full_results gating
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.dependencies import get_payment_settings_dependency
from app.api.routers.audit_jobs import router as audit_jobs_router
from app.config import PaymentSettings
from app.domain.audit_job import SuggestedCompetitor
from app.services.audit_orchestrator_service import (
    AuditOrchestratorService,
    get_audit_orchestrator_service,
)
from app.services.audit_pipeline import AuditPipeline
from app.services.competitor_analysis import CompetitorAnalyzer
from app.services.competitor_batch import CompetitorBatchScheduler
from fakes import FakeCrawler, FakeDiscovery, FakeScorer, make_analysis, make_crawl
from llm_synthesis.adapter import MockLLMAdapter

PAYMENT_TOKEN = "secret-token"


@pytest.fixture
def service(state_machine, pipeline_settings) -> AuditOrchestratorService:
    competitor_crawler = FakeCrawler()
    pipeline = AuditPipeline(
        state_machine=state_machine,
        crawler=FakeCrawler({"example.com": make_crawl("https://example.com")}),
        scorer=FakeScorer(
            make_analysis(58, suggestions=[SuggestedCompetitor(domain="rival.com", confidence="high")])
        ),
        discovery=FakeDiscovery(),
        batch=CompetitorBatchScheduler(
            analyzer=CompetitorAnalyzer(
                crawler=competitor_crawler,
                adapter=MockLLMAdapter(),
                settings=pipeline_settings,
                max_retries=0,
            ),
            settings=pipeline_settings,
        ),
        settings=pipeline_settings,
    )
    return AuditOrchestratorService(state_machine=state_machine, pipeline=pipeline, settings=pipeline_settings)


@pytest.fixture
def client(service: AuditOrchestratorService) -> TestClient:
    app = FastAPI()
    app.include_router(audit_jobs_router)
    app.dependency_overrides[get_audit_orchestrator_service] = lambda: service
    app.dependency_overrides[get_payment_settings_dependency] = lambda: PaymentSettings(
        confirmation_token=PAYMENT_TOKEN
    )
    return TestClient(app)


def _create(client: TestClient, **body) -> str:
    response = client.post("/api/analyze", json={"url": "example.com", **body})
    assert response.status_code == 200
    return response.json()["analysis_id"]


# ---------------------------------------------------------------------------
# Create and poll
# ---------------------------------------------------------------------------


class TestCreate:
    def test_accepted(self, client: TestClient) -> None:
        response = client.post("/api/analyze", json={"url": "example.com", "email": "a@b.co"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "pending"
        assert body["message"] == "Analysis started"
        assert body["analysis_id"]
        assert body["analysis"]["id"] == body["analysis_id"]
        assert body["analysis"]["url"] == "https://example.com"
        assert body["analysis"]["status"] == "pending"
        assert body["analysis"]["progress"] == 0
        assert body["analysis"]["full_results"] is None

    def test_missing_url(self, client: TestClient) -> None:
        response = client.post("/api/analyze", json={})
        assert response.status_code == 400
        assert response.json()["detail"] == "Please provide a website URL."

    def test_invalid_email(self, client: TestClient) -> None:
        response = client.post("/api/analyze", json={"url": "example.com", "email": "nope"})
        assert response.status_code == 400


class TestPoll:
    def test_unknown_id(self, client: TestClient) -> None:
        response = client.get("/api/analyze/missing")
        assert response.status_code == 404
        assert response.json()["detail"] == "Analysis not found"

    def test_first_poll_runs_pipeline_to_completion(self, client: TestClient) -> None:
        analysis_id = _create(client)

        first = client.get(f"/api/analyze/{analysis_id}").json()["analysis"]
        assert first["status"] == "crawling"
        assert first["progress"] >= 5

        # TestClient runs background tasks before returning the response.
        done = client.get(f"/api/analyze/{analysis_id}").json()["analysis"]
        assert done["status"] == "complete"
        assert done["progress"] == 100
        assert done["preview"]["differentiation_score"] == 58
        assert done["has_full_results"] is True
        assert done["full_results"] is None
        comparison = done["competitor_comparison"]
        assert comparison["competitors"] == ["rival.com"]
        assert [record["domain"] for record in comparison["detailed_scores"]] == ["rival.com"]


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


class TestEnrich:
    def test_competitors_are_analyzed(self, client: TestClient) -> None:
        analysis_id = _create(client)
        client.get(f"/api/analyze/{analysis_id}")

        response = client.patch(f"/api/analyze/{analysis_id}", json={"competitors": ["other.com"]})

        assert response.status_code == 200
        body = response.json()
        assert body["competitors"] == ["other.com", "rival.com"]
        assert body["message"] == "Analyzing 2 competitors..."
        assert body["enrichment_status"] == "analyzing_competitors"

        job = client.get(f"/api/analyze/{analysis_id}").json()["analysis"]
        assert job["enrichment_status"] == "complete"
        domains = sorted(record["domain"] for record in job["competitor_comparison"]["detailed_scores"])
        assert domains == ["other.com", "rival.com"]

    def test_socials_only(self, client: TestClient) -> None:
        analysis_id = _create(client)
        response = client.patch(
            f"/api/analyze/{analysis_id}",
            json={"social_urls": ["https://linkedin.com/company/example"]},
        )
        assert response.json()["message"] == "Analysis updated"
        assert response.json()["competitors"] == []

    def test_unknown_id(self, client: TestClient) -> None:
        response = client.patch("/api/analyze/missing", json={"competitors": ["a.com"]})
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------


class TestPaid:
    def test_rejects_wrong_token(self, client: TestClient) -> None:
        analysis_id = _create(client)
        response = client.post(f"/api/analyze/{analysis_id}/paid", headers={"X-Payment-Token": "wrong"})
        assert response.status_code == 403

    def test_unknown_id(self, client: TestClient) -> None:
        response = client.post("/api/analyze/missing/paid", headers={"X-Payment-Token": PAYMENT_TOKEN})
        assert response.status_code == 404

    def test_paid_unlocks_full_results(self, client: TestClient) -> None:
        analysis_id = _create(client)
        client.get(f"/api/analyze/{analysis_id}")

        response = client.post(f"/api/analyze/{analysis_id}/paid", headers={"X-Payment-Token": PAYMENT_TOKEN})
        assert response.status_code == 200
        assert response.json()["paid"] is True

        job = client.get(f"/api/analyze/{analysis_id}").json()["analysis"]
        assert job["paid"] is True
        assert job["full_results"] is not None

    def test_no_token_configured(self, client: TestClient) -> None:
        client.app.dependency_overrides[get_payment_settings_dependency] = lambda: PaymentSettings()
        analysis_id = _create(client)
        response = client.post(f"/api/analyze/{analysis_id}/paid")
        assert response.status_code == 200
