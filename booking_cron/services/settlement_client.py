"""
Settlement Client
Asks the backend to complete a booking on-chain and release escrowed funds.
"""
from dataclasses import dataclass
import httpx
from booking_cron.config import settings


COMPLETE_PATH = "/api/bookings/{booking_id}/complete-service-backend"


class SettlementError(Exception):
    """Raised when the settlement backend cannot be reached or times out"""


@dataclass(frozen=True)
class SettlementResult:
    ok: bool
    tx_ref: str | None = None
    detail: str | None = None


class SettlementClient:
    """HTTP client for the settlement backend"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.settlement_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.settlement_timeout_seconds
        self._transport = transport

    def complete_booking(self, booking_id: str) -> SettlementResult:
        """
        Complete a booking through the settlement backend.

        Args:
            booking_id: Booking UUID

        Returns:
            SettlementResult; ok is False when the backend answers with a
            non-2xx status

        Raises:
            SettlementError: on timeout or transport failure
        """
        url = self.base_url + COMPLETE_PATH.format(booking_id=booking_id)
        payload = {
            "admin_notes": "Completed automatically after scheduled end time",
            "trigger_reason": "scheduled_end_time_passed",
        }

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise SettlementError(f"Timeout calling settlement backend: {url}") from e
        except httpx.HTTPError as e:
            raise SettlementError(f"Error calling settlement backend: {e}") from e

        if not response.is_success:
            return SettlementResult(ok=False, detail=f"{response.status_code}: {response.text}")

        tx_ref = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if isinstance(body, dict):
                tx_ref = body.get("txHash") or body.get("completion_tx_hash")

        return SettlementResult(ok=True, tx_ref=tx_ref)
