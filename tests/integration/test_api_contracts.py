"""HTTP contract tests for the ingestion and fraud-detection services."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from bank_aml.domains.screening.ingestion import IngestionService
from bank_aml.domains.screening.models import Recommendation, RiskAnalysis, RiskLevel
from bank_aml.domains.screening.queries import TransactionQueryService
from bank_aml.main import create_ingestion_app, create_screening_app
from bank_aml.shared.errors import BusUnavailableError
from tests.factories import make_transaction, transaction_payload

pytestmark = pytest.mark.integration

BASE_URL = "http://test"
ENDPOINT = "/api/v1/transactions"


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL)


@pytest.fixture
def publisher() -> AsyncMock:
    return AsyncMock()


@pytest_asyncio.fixture
async def ingestion_client(repository, db_engine, publisher):
    app = create_ingestion_app(lifespan=None)
    app.state.repository = repository
    app.state.db_engine = db_engine
    app.state.ingestion_service = IngestionService(repository, publisher)
    app.state.query_service = TransactionQueryService(repository)
    async with _client(app) as client:
        yield client


@pytest_asyncio.fixture
async def screening_client(repository, db_engine, fast_store):
    app = create_screening_app(lifespan=None)
    app.state.repository = repository
    app.state.db_engine = db_engine
    app.state.fast_store = fast_store
    app.state.query_service = TransactionQueryService(repository, fast_store)
    async with _client(app) as client:
        yield client


class TestSubmitTransaction:
    """POST /api/v1/transactions"""

    @pytest.mark.asyncio
    async def test_accepted(self, ingestion_client, repository, publisher):
        resp = await ingestion_client.post(ENDPOINT, json=transaction_payload())
        assert resp.status_code == 201
        body = resp.json()
        assert body["processing_id"].startswith("proc_")
        assert body["status"] == "pending_review"
        assert body["message"] == "Transaction accepted for analysis"

        status = await repository.get_status(body["processing_id"])
        assert status.status == "pending_review"
        publisher.publish.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_optional_fields_may_be_omitted(self, ingestion_client):
        payload = transaction_payload()
        for key in ("counterparty_account", "counterparty_bank", "counterparty_country",
                    "timestamp", "channel"):
            payload.pop(key)
        resp = await ingestion_client.post(ENDPOINT, json=payload)
        assert resp.status_code == 201

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [{"amount": 0}, {"amount": -5}, {"transaction_id": ""}, {"currency": "  "}],
    )
    async def test_invalid_fields(self, ingestion_client, publisher, overrides):
        resp = await ingestion_client.post(ENDPOINT, json=transaction_payload(**overrides))
        assert resp.status_code == 400
        assert resp.json()["error"] == "bad_request"
        publisher.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_required_field(self, ingestion_client):
        payload = transaction_payload()
        payload.pop("account_number")
        resp = await ingestion_client.post(ENDPOINT, json=payload)
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_malformed_json(self, ingestion_client):
        resp = await ingestion_client.post(
            ENDPOINT, content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_publish_failure_is_500_and_leaves_pending_row(
        self, ingestion_client, repository, publisher
    ):
        publisher.publish.side_effect = BusUnavailableError("kafka down")
        resp = await ingestion_client.post(ENDPOINT, json=transaction_payload())
        assert resp.status_code == 500
        body = resp.json()
        assert body["error"] == "internal_server_error"
        assert "request_id" in body

        rows = await repository.list()
        assert len(rows) == 1
        assert rows[0].status == "pending_review"

    @pytest.mark.asyncio
    async def test_request_id_header(self, ingestion_client):
        resp = await ingestion_client.post(
            ENDPOINT, json=transaction_payload(), headers={"X-Request-ID": "req-42"}
        )
        assert resp.headers["X-Request-ID"] == "req-42"


class TestListTransactions:
    """GET /api/v1/transactions"""

    @pytest.mark.asyncio
    async def test_list_newest_first(self, ingestion_client):
        ids = []
        for i in range(3):
            resp = await ingestion_client.post(
                ENDPOINT, json=transaction_payload(transaction_id=f"T{i}")
            )
            ids.append(resp.json()["processing_id"])

        resp = await ingestion_client.get(ENDPOINT, params={"limit": 2})
        assert resp.status_code == 200
        rows = resp.json()["transactions"]
        assert [r["processing_id"] for r in rows] == [ids[2], ids[1]]
        assert rows[0]["amount"] == 12345.67

    @pytest.mark.asyncio
    async def test_empty(self, ingestion_client):
        resp = await ingestion_client.get(ENDPOINT)
        assert resp.json() == {"transactions": []}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, 501, "abc"])
    async def test_invalid_limit(self, ingestion_client, limit):
        resp = await ingestion_client.get(ENDPOINT, params={"limit": limit})
        assert resp.status_code == 400


class TestTransactionStatus:
    """GET /api/v1/transactions/{processing_id}"""

    @pytest.mark.asyncio
    async def test_not_found(self, ingestion_client):
        resp = await ingestion_client.get(f"{ENDPOINT}/proc_missing")
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_pending(self, ingestion_client):
        created = await ingestion_client.post(ENDPOINT, json=transaction_payload())
        pid = created.json()["processing_id"]

        resp = await ingestion_client.get(f"{ENDPOINT}/{pid}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "pending_review"
        assert "risk_score" not in body
        assert "flags" not in body

    @pytest.mark.asyncio
    async def test_reviewed_with_cached_flags(self, screening_client, repository, fast_store):
        analyzed_at = datetime(2026, 3, 10, 14, 0, 5, tzinfo=UTC)
        await repository.save("proc_1", make_transaction())
        await repository.update_analysis("proc_1", 45, RiskLevel.MEDIUM, analyzed_at)
        await fast_store.put_analysis(
            "proc_1",
            RiskAnalysis(
                risk_score=45,
                risk_level=RiskLevel.MEDIUM,
                flags=["large_amount", "unusual_time"],
                recommendation=Recommendation.LOG_ONLY,
                analyzed_at=analyzed_at,
            ),
        )

        resp = await screening_client.get(f"{ENDPOINT}/proc_1")
        body = resp.json()
        assert body["status"] == "reviewed"
        assert body["risk_score"] == 45
        assert body["risk_level"] == "medium"
        assert body["flags"] == ["large_amount", "unusual_time"]


class TestClearTransactions:
    """DELETE /api/v1/transactions"""

    @pytest.mark.asyncio
    async def test_ingestion_clear(self, ingestion_client, repository):
        await ingestion_client.post(ENDPOINT, json=transaction_payload())
        resp = await ingestion_client.delete(ENDPOINT)
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "All transactions cleared successfully"
        assert body["clear_storage"] is True
        assert body["deleted"] == 1
        assert await repository.list() == []

    @pytest.mark.asyncio
    async def test_screening_clear_drops_cache_but_keeps_blacklist(
        self, screening_client, repository, fast_store
    ):
        await repository.save("proc_1", make_transaction())
        await fast_store.incr_daily("40817810000000000001")
        await fast_store.add_to_blacklist("acc-9")

        resp = await screening_client.delete(ENDPOINT)
        assert resp.json()["message"] == "All transactions and cache cleared successfully"
        assert await fast_store.get_daily("40817810000000000001") == 0
        assert await fast_store.is_blacklisted("acc-9")
        assert await fast_store.is_high_risk_country("KY")


class TestAdminEndpoints:
    @pytest.mark.asyncio
    async def test_blacklist_account(self, screening_client, fast_store):
        resp = await screening_client.post(
            "/api/v1/blacklist/accounts", json={"account_number": "acc-77"}
        )
        assert resp.status_code == 201
        assert resp.json() == {"account_number": "acc-77", "blacklisted": True}
        assert await fast_store.is_blacklisted("acc-77")

    @pytest.mark.asyncio
    async def test_blacklist_rejects_blank(self, screening_client):
        resp = await screening_client.post(
            "/api/v1/blacklist/accounts", json={"account_number": " "}
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_risk_stats(self, screening_client, fast_store):
        await fast_store.incr_stats("low")
        await fast_store.incr_stats("high")
        resp = await screening_client.get("/api/v1/stats/risk")
        assert resp.json() == {"risk_levels": {"low": 1, "medium": 0, "high": 1}, "total": 2}

    @pytest.mark.asyncio
    async def test_screening_service_does_not_accept_submissions(self, screening_client):
        resp = await screening_client.post(ENDPOINT, json=transaction_payload())
        assert resp.status_code == 405
