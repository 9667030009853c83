"""
Record Store Client.

Thin async wrapper around the CRM's HTTP JSON API: the custom field
schema for a location, a contact's current custom field values, and the
batched custom field write. Every call retries transport errors, 429s and
5xx responses with exponential backoff before giving up.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from fieldsync.config import get_settings
from fieldsync.errors import CRMRequestError
from fieldsync.logging_config import get_logger

logger = get_logger(__name__)

RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class CRMClient:
    """Async client for the record store API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        location_id: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.location_id = location_id if location_id is not None else settings.crm_location_id
        self.max_retries = max_retries if max_retries is not None else settings.max_retry_attempts
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.retry_backoff_seconds

        token = api_token if api_token is not None else settings.crm_api_token
        if not token:
            logger.warning("crm_token_missing")

        self._client = httpx.AsyncClient(
            base_url=base_url or settings.crm_base_url,
            timeout=timeout or settings.http_timeout_seconds,
            headers={
                "Authorization": f"Bearer {token}",
                "Version": api_version or settings.crm_api_version,
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # -- Schema --

    async def fetch_custom_fields(self) -> list[dict[str, Any]]:
        """Fetch every custom field definition for the configured location."""
        data = await self._request("GET", f"/locations/{self.location_id}/customFields")
        fields = data.get("customFields", [])
        logger.info("custom_fields_fetched", location_id=self.location_id, count=len(fields))
        return fields

    # -- Contacts --

    async def get_contact(self, contact_id: str) -> dict[str, Any]:
        data = await self._request("GET", f"/contacts/{contact_id}")
        return data.get("contact", data)

    async def get_custom_field_values(self, contact_id: str) -> dict[str, Any]:
        """Current custom field values of a contact, keyed by field id."""
        contact = await self.get_contact(contact_id)
        values: dict[str, Any] = {}
        for item in contact.get("customFields") or []:
            field_id = item.get("id")
            if not field_id:
                continue
            values[field_id] = item.get("value", item.get("field_value"))
        return values

    async def update_custom_fields(self, contact_id: str, updates: list[dict[str, Any]]) -> dict[str, Any]:
        """
        Write several custom fields in a single request.

        Args:
            contact_id: Target contact.
            updates: ``[{"id": field_id, "value": value}, ...]``
        """
        data = await self._request("PUT", f"/contacts/{contact_id}", json={"customFields": updates})
        logger.info("contact_fields_updated", contact_id=contact_id, fields=len(updates))
        return data

    # -- Transport --

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request, retrying with exponential backoff."""
        attempt = 0
        while True:
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.TransportError as e:
                error = CRMRequestError(f"{method} {path} failed: {e}")
            else:
                if response.status_code < 400:
                    return self._decode(method, path, response)
                error = CRMRequestError(
                    f"{method} {path} returned {response.status_code}: {response.text[:200]}",
                    status_code=response.status_code,
                )
                if response.status_code not in RETRYABLE_STATUS:
                    logger.error("crm_request_rejected", method=method, path=path, status=response.status_code)
                    raise error

            if attempt >= self.max_retries:
                logger.error("crm_request_failed", method=method, path=path, attempts=attempt + 1, error=str(error))
                raise error

            delay = self.backoff_seconds * (2 ** attempt)
            attempt += 1
            logger.warning("crm_request_retry", method=method, path=path, retry=attempt, delay=delay, error=str(error))
            await asyncio.sleep(delay)

    @staticmethod
    def _decode(method: str, path: str, response: httpx.Response) -> dict[str, Any]:
        """JSON object body of a successful response; empty body reads as ``{}``."""
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            logger.error("crm_response_undecodable", method=method, path=path, status=response.status_code)
            raise CRMRequestError(
                f"{method} {path} returned a non-JSON body: {response.text[:200]}",
                status_code=response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise CRMRequestError(
                f"{method} {path} returned {type(data).__name__}, expected an object",
                status_code=response.status_code,
            )
        return data
