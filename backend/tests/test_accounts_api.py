"""API tests for POST /api/v1/accounts, with the pipeline wired to in-memory fakes."""

import pytest
import pytest_asyncio
from fastapi import status
from httpx import ASGITransport, AsyncClient

from account_events.api.v1.endpoints.accounts import get_account_pipeline
from account_events.main import app
from account_events.services.salesforce_service import SalesforceErrorKind, SalesforceServiceError

ACCOUNTS_URL = "/api/v1/accounts"


@pytest_asyncio.fixture
async def async_client(pipeline):
    original = dict(app.dependency_overrides)
    app.dependency_overrides[get_account_pipeline] = lambda: pipeline
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.dependency_overrides = original


@pytest.mark.asyncio
async def test_create_account_success(async_client, publisher, acme_payload) -> None:
    resp = await async_client.post(ACCOUNTS_URL, params={"accountName": "Acme"}, json=acme_payload)

    assert resp.status_code == status.HTTP_200_OK
    assert resp.json() == {
        "message": "Account created and event published successfully",
        "accountId": "001xx",
        "success": True,
    }
    assert publisher.events[0].account_name == "Acme"
    assert publisher.events[0].account_id == "001xx"


@pytest.mark.asyncio
async def test_create_account_missing_name(async_client, record_client) -> None:
    resp = await async_client.post(ACCOUNTS_URL, json={"accountName": ""})

    assert resp.status_code == status.HTTP_400_BAD_REQUEST
    assert resp.json() == {"error": "Invalid Salesforce input", "details": "accountName required"}
    assert record_client.calls == []


@pytest.mark.asyncio
async def test_create_account_non_json_body(async_client) -> None:
    resp = await async_client.post(
        ACCOUNTS_URL, content=b"accountName=Acme", headers={"Content-Type": "text/plain"}
    )

    assert resp.status_code == status.HTTP_400_BAD_REQUEST
    assert resp.json() == {
        "error": "Invalid Salesforce input",
        "details": "request body must be a JSON object",
    }


@pytest.mark.asyncio
async def test_create_account_salesforce_invalid_input(async_client, record_client, publisher, acme_payload) -> None:
    record_client.error = SalesforceServiceError(
        "Industry: bad value for restricted picklist field", kind=SalesforceErrorKind.INVALID_INPUT
    )

    resp = await async_client.post(ACCOUNTS_URL, json=acme_payload)

    assert resp.status_code == status.HTTP_400_BAD_REQUEST
    assert resp.json() == {
        "error": "Invalid Salesforce input",
        "details": "Industry: bad value for restricted picklist field",
    }
    assert publisher.events[0].status == "FAILED"


@pytest.mark.asyncio
async def test_create_account_salesforce_down(async_client, record_client, acme_payload) -> None:
    record_client.error = SalesforceServiceError("Salesforce request failed after 1 attempt(s): timed out")

    resp = await async_client.post(ACCOUNTS_URL, json=acme_payload)

    assert resp.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert resp.json() == {"error": "Unhandled error: Salesforce request failed after 1 attempt(s): timed out"}


@pytest.mark.asyncio
async def test_idempotency_key_header_is_forwarded(async_client, record_client, acme_payload) -> None:
    resp = await async_client.post(ACCOUNTS_URL, json=acme_payload, headers={"Idempotency-Key": "req-42"})

    assert resp.status_code == status.HTTP_200_OK
    assert record_client.calls[0][1] == "req-42"


@pytest.mark.asyncio
async def test_health(async_client) -> None:
    resp = await async_client.get("/health")

    assert resp.status_code == status.HTTP_200_OK
    assert resp.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_root_lists_accounts_endpoint(async_client) -> None:
    resp = await async_client.get("/")

    assert resp.json()["endpoints"]["accounts"] == ACCOUNTS_URL
