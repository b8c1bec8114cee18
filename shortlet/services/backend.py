from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any

import httpx

logger = logging.getLogger(__name__)

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


class BackendError(Exception):
    """A backend call failed; ``message`` is safe to show to the guest."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def is_object_id(value: str | None) -> bool:
    return bool(value) and bool(OBJECT_ID_PATTERN.match(value))


def _response_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message") or body.get("detail")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


def _unwrap_properties(body: Any) -> list[dict]:
    if isinstance(body, dict) and isinstance(body.get("properties"), list):
        return body["properties"]
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and body:
        return [body]
    return []


class BackendClient:
    """Async client for the shortlet backend REST API.

    One instance is shared per application; the caller's bearer token is
    passed per call because the BFF serves many guests.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        fallback_message: str,
        token: str | None = None,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            response = await self._client.request(
                method, path, params=params, json=json, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            message = _response_message(e.response) or fallback_message
            logger.warning("%s %s failed with %s: %s", method, path, status_code, message)
            raise BackendError(message, status_code) from e
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out", method, path)
            raise BackendError("The booking service timed out. Please try again.") from e
        except httpx.RequestError as e:
            logger.warning("%s %s could not connect: %s", method, path, e)
            raise BackendError(f"Could not connect to the booking service: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(fallback_message, response.status_code) from e

    # -- Properties --

    async def list_properties(self, *, limit: int = 50, status: str | None = "active") -> list[dict]:
        params: dict[str, Any] = {"limit": limit}
        if status:
            params["status"] = status
        body = await self._request(
            "GET", "/properties", params=params, fallback_message="Failed to fetch properties"
        )
        return _unwrap_properties(body)

    async def get_property(self, property_id: str) -> dict:
        if not property_id or property_id == "undefined":
            raise BackendError("Property ID is required", 400)
        if not is_object_id(property_id):
            raise BackendError("Invalid property ID format", 400)

        try:
            body = await self._request(
                "GET", f"/properties/{property_id}", fallback_message="Failed to fetch property"
            )
        except BackendError as e:
            if e.status_code == 400 and e.message == "Failed to fetch property":
                raise BackendError("Invalid property ID format", 400) from e
            if e.status_code == 404 and e.message == "Failed to fetch property":
                raise BackendError("Property not found", 404) from e
            if e.status_code is not None and e.status_code >= 500:
                raise BackendError(f"Server error: {e.message}", e.status_code) from e
            raise

        if isinstance(body, dict) and isinstance(body.get("property"), dict):
            body = body["property"]
        if not isinstance(body, dict) or not body:
            raise BackendError("Property not found", 404)
        return body

    async def list_amenities(self, *, limit: int = 100) -> list[dict]:
        body = await self._request(
            "GET", "/amenities", params={"limit": limit}, fallback_message="Failed to fetch amenities"
        )
        if isinstance(body, dict):
            return list(body.get("amenities") or [])
        return body if isinstance(body, list) else []

    # -- Bookings --

    async def check_availability(
        self,
        property_id: str,
        check_in: date,
        check_out: date,
        *,
        token: str | None = None,
    ) -> bool:
        body = await self._request(
            "GET",
            f"/bookings/property/{property_id}/availability",
            params={"checkIn": check_in.isoformat(), "checkOut": check_out.isoformat()},
            token=token,
            fallback_message="Failed to check availability",
        )
        if isinstance(body, dict):
            return bool(body.get("available"))
        return bool(body)

    async def create_booking(self, payload: dict[str, Any], *, token: str | None = None) -> dict:
        body = await self._request(
            "POST", "/bookings", json=payload, token=token, fallback_message="Booking creation failed"
        )
        if not body:
            raise BackendError("No response from server")
        if not isinstance(body, dict):
            raise BackendError("Booking creation failed")
        if body.get("success") is False:
            raise BackendError(body.get("message") or "Booking creation failed")
        message = body.get("message")
        if isinstance(message, str) and "Failed" in message:
            raise BackendError(message)
        return body

    async def initialize_payment(
        self, booking_id: str, email: str, *, token: str | None = None
    ) -> dict:
        body = await self._request(
            "POST",
            f"/bookings/{booking_id}/initialize-payment",
            json={"email": email},
            token=token,
            fallback_message="Payment initialization failed",
        )
        if not body:
            raise BackendError("No response from payment service")
        if not isinstance(body, dict):
            raise BackendError("Payment initialization failed")
        if body.get("success") is False:
            raise BackendError(body.get("message") or "Payment initialization failed")
        data = body.get("data") if isinstance(body.get("data"), dict) else body
        return {
            "authorization_url": data.get("authorization_url"),
            "reference": data.get("reference"),
            "access_code": data.get("access_code"),
        }

    async def verify_payment(self, reference: str, *, token: str | None = None) -> dict:
        return await self._request(
            "POST",
            "/bookings/verify-payment",
            json={"reference": reference},
            token=token,
            fallback_message="Failed to verify payment",
        )

    async def get_user_bookings(self, *, token: str | None = None) -> list[dict]:
        body = await self._request(
            "GET", "/bookings/my-bookings", token=token, fallback_message="Failed to fetch bookings"
        )
        if isinstance(body, dict):
            return list(body.get("bookings") or [])
        return body if isinstance(body, list) else []

    async def cancel_booking(
        self, booking_id: str, reason: str, *, token: str | None = None
    ) -> dict | None:
        return await self._request(
            "PATCH",
            f"/bookings/{booking_id}/cancel",
            json={"cancellationReason": reason},
            token=token,
            fallback_message="Failed to cancel booking",
        )
