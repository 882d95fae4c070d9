"""Settlement webhook client with exponential backoff retry logic"""

import httpx
import asyncio
import logging
from typing import Dict, Any
from term_savings.config import settings
from term_savings.domain.models import DepositState, Settlement
from term_savings.infrastructure.observability.metrics import (
    settlement_latency_histogram,
    settlement_failure_counter,
)

SETTLEMENT_EVENTS = {
    DepositState.CLAIMED: "DEPOSIT_CLAIMED",
    DepositState.EARLY_WITHDRAWN: "DEPOSIT_EARLY_WITHDRAWN",
}


def build_settlement_event(settlement: Settlement) -> Dict[str, Any]:
    """Webhook payload for a finalized deposit. Amounts are sent as decimal strings."""
    deposit = settlement.deposit
    return {
        "event": SETTLEMENT_EVENTS[settlement.final_state],
        "deposit_id": str(deposit.id),
        "owner_id": deposit.owner_id,
        "payout": str(settlement.payout),
        "state": settlement.final_state.value,
    }


class SettlementClient:
    """Client that hands payouts to the settlement service for transfer to the owner"""

    def __init__(self, webhook_url: str | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.webhook_url = webhook_url or settings.settlement_webhook_url
        self.transport = transport
        self.timeout = settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base

    async def send_settlement_event(self, payload: Dict[str, Any]) -> None:
        """
        Send a settlement event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s, 16s (base * 2^(attempt-1))
        - Retries on 5xx errors and network failures; 4xx fails immediately
        - Tracks latency histogram and failure counter

        Args:
            payload: Event data built by build_settlement_event
        """
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with settlement_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    settlement_failure_counter.inc()

                    client_error = (
                        isinstance(e, httpx.HTTPStatusError) and e.response.status_code < 500
                    )
                    if client_error or attempt >= self.max_retries:
                        logging.error(
                            f"Settlement delivery failed: {e}",
                            extra={"deposit_id": payload.get("deposit_id"), "attempts": attempt},
                        )
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
