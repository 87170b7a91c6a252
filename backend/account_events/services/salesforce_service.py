"""
Salesforce REST client for Account creation.
Uses Bearer token auth, requests library, and maps Salesforce errors to invalid-input vs unexpected.
"""

import logging
import time
from enum import Enum
from typing import Any
from urllib.parse import quote

import requests

from account_events.core.config import Settings, get_settings
from account_events.schemas.account import AccountRecord, CreateOutcome

logger = logging.getLogger(__name__)

ACCOUNT_SOBJECT = "Account"


class SalesforceErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    UNEXPECTED = "unexpected"


class SalesforceServiceError(Exception):
    """Raised when a Salesforce API call fails. kind tells the caller who is at fault."""

    def __init__(
        self,
        message: str,
        kind: SalesforceErrorKind = SalesforceErrorKind.UNEXPECTED,
        status_code: int | None = None,
        detail: Any = None,
    ) -> None:
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)

    @property
    def is_invalid_input(self) -> bool:
        return self.kind is SalesforceErrorKind.INVALID_INPUT


class SalesforceService:
    """
    Salesforce REST service (sObject Account). One remote call per create unless the create
    is an idempotent upsert, in which case 429/5xx and transport errors are retried.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self._instance_url = settings.salesforce_instance_url
        self._token = settings.salesforce_access_token
        self._api_version = settings.salesforce_api_version
        self._external_id_field = settings.salesforce_external_id_field
        self._max_retries = settings.salesforce_max_retries
        self._timeout = settings.record_timeout_seconds
        self._retry_status_codes = (429, 500, 502, 503)

    def _get_headers(self) -> dict[str, str]:
        """Build request headers with Bearer token."""
        if not self._token:
            raise SalesforceServiceError(
                "Salesforce access token not configured. Set SALESFORCE_ACCESS_TOKEN in environment."
            )
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _sobject_url(self, *parts: str) -> str:
        if not self._instance_url:
            raise SalesforceServiceError(
                "Salesforce instance URL not configured. Set SALESFORCE_INSTANCE_URL in environment."
            )
        path = "/".join(quote(p, safe="") for p in (ACCOUNT_SOBJECT, *parts))
        return f"{self._instance_url}/services/data/{self._api_version}/sobjects/{path}"

    @staticmethod
    def _error_description(body: Any) -> str | None:
        """Salesforce returns a list of {message, errorCode, fields}; join the messages."""
        if isinstance(body, dict):
            body = body.get("errors") or [body]
        if not isinstance(body, list):
            return None
        messages = [
            str(err.get("message") or err.get("errorCode"))
            for err in body
            if isinstance(err, dict) and (err.get("message") or err.get("errorCode"))
        ]
        return "; ".join(messages) or None

    def _handle_error(self, response: requests.Response) -> None:
        """Interpret error response and raise SalesforceServiceError with detail."""
        try:
            body = response.json()
        except ValueError:
            body = response.text or None
        description = self._error_description(body)
        if description is None:
            description = f"Salesforce API error: {response.status_code}"
            if isinstance(body, str) and body:
                description += f" ({body[:500]})"
        kind = (
            SalesforceErrorKind.INVALID_INPUT
            if response.status_code == 400
            else SalesforceErrorKind.UNEXPECTED
        )
        raise SalesforceServiceError(
            description, kind=kind, status_code=response.status_code, detail=body
        )

    def _request(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any],
        retries: int = 0,
    ) -> dict[str, Any]:
        """Execute an HTTP request; retries only apply when the caller says the call is idempotent."""
        headers = self._get_headers()
        last_exc: Exception | None = None

        for attempt in range(retries + 1):
            try:
                resp = requests.request(
                    method=method,
                    url=url,
                    headers=headers,
                    json=json,
                    timeout=self._timeout,
                )
            except requests.RequestException as e:
                last_exc = e
                logger.warning("Salesforce request failed (attempt %d): %s", attempt + 1, e)
                if attempt < retries:
                    time.sleep(2 ** attempt)
                continue

            if resp.ok:
                if resp.status_code == 204 or not resp.content:
                    return {}
                try:
                    data = resp.json()
                except ValueError as e:
                    raise SalesforceServiceError(
                        "Salesforce returned a non-JSON response", status_code=resp.status_code
                    ) from e
                return data if isinstance(data, dict) else {"results": data}

            if resp.status_code in self._retry_status_codes and attempt < retries:
                retry_after = resp.headers.get("Retry-After")
                wait = float(retry_after) if retry_after and retry_after.isdigit() else (2 ** attempt)
                wait = min(wait, self._timeout)
                logger.warning(
                    "Salesforce %s %s (attempt %d), retrying in %.1fs",
                    resp.status_code,
                    resp.reason,
                    attempt + 1,
                    wait,
                )
                time.sleep(wait)
                continue

            self._handle_error(resp)

        if last_exc:
            raise SalesforceServiceError(
                f"Salesforce request failed after {retries + 1} attempt(s): {last_exc!s}"
            ) from last_exc
        raise SalesforceServiceError("Salesforce request failed unexpectedly")

    def create_account(
        self,
        record: AccountRecord,
        idempotency_key: str | None = None,
    ) -> CreateOutcome:
        """
        Create an Account. With an idempotency key and SALESFORCE_EXTERNAL_ID_FIELD configured the
        create is an upsert on that field, so a replayed request resolves to the same record.
        """
        payload = record.to_salesforce_payload()
        if idempotency_key and self._external_id_field:
            url = self._sobject_url(self._external_id_field, idempotency_key)
            data = self._request("PATCH", url, json=payload, retries=self._max_retries)
        else:
            if idempotency_key:
                logger.debug(
                    "Idempotency key supplied but SALESFORCE_EXTERNAL_ID_FIELD is not set; plain create"
                )
            data = self._request("POST", self._sobject_url(), json=payload)

        if data.get("success") is False:
            description = self._error_description(data.get("errors")) or "Salesforce rejected the account"
            raise SalesforceServiceError(
                description, kind=SalesforceErrorKind.INVALID_INPUT, detail=data
            )
        record_id = data.get("id")
        if not record_id:
            raise SalesforceServiceError("Salesforce did not return an account id", detail=data)
        logger.info("Created Salesforce account %s (%s)", record_id, record.name)
        return CreateOutcome.created(str(record_id))


def get_salesforce_service(settings: Settings | None = None) -> SalesforceService:
    """Dependency: return a SalesforceService instance."""
    return SalesforceService(settings=settings)
