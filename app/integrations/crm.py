"""
CRM mirror of claims and payments (Airtable REST API).
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import httpx
import structlog

from app.integrations.base import IntegrationError, IntegrationNotConfigured, instrumented
from app.models.tables import Claim, Payment

logger = structlog.get_logger(__name__)

PROVIDER = "airtable"
CLAIMS_TABLE = "Claims"
PAYMENTS_TABLE = "Payments"


def _money(value: Optional[Decimal]) -> float:
    return float(value) if value is not None else 0.0


def claim_fields(claim: Claim) -> dict[str, Any]:
    return {
        "Claim ID": claim.claim_id,
        "Passenger Name": claim.passenger_name,
        "Email": claim.email,
        "Flight Number": claim.flight_number,
        "Flight Date": claim.flight_date,
        "Departure Airport": claim.departure_airport,
        "Arrival Airport": claim.arrival_airport,
        "Issue Type": claim.issue_type,
        "Delay Duration": claim.delay_duration or "",
        "Delay Reason": claim.delay_reason or "",
        "Status": claim.status,
        "POA Requested": claim.poa_requested,
        "POA Signed": claim.poa_signed,
        "Compensation Amount": _money(claim.compensation_amount),
        "Commission Amount": _money(claim.commission_amount),
        "Created At": datetime.now(timezone.utc).isoformat(),
    }


class AirtableClient:
    """Creates and updates CRM rows. One HTTP call per operation, no retries."""

    def __init__(
        self,
        api_key: Optional[str],
        base_id: Optional[str],
        api_url: str = "https://api.airtable.com/v0",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_id = base_id
        self.base_url = f"{api_url.rstrip('/')}/{base_id}"
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.base_id)

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> dict:
        if not self.configured:
            raise IntegrationNotConfigured(PROVIDER, operation)
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with instrumented(PROVIDER, operation):
            async with httpx.AsyncClient(
                base_url=self.base_url, headers=headers, timeout=self.timeout,
                transport=self._transport,
            ) as client:
                try:
                    response = await client.request(method, path, **kwargs)
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    raise IntegrationError(PROVIDER, operation, str(e)) from e
                return response.json()

    async def create_claim_record(self, claim: Claim) -> str:
        """Mirror a claim. Returns the CRM record id."""
        data = await self._request(
            "create_claim_record", "POST", f"/{CLAIMS_TABLE}",
            json={"fields": claim_fields(claim), "typecast": True},
        )
        logger.info("crm_claim_created", claim_id=claim.claim_id, record_id=data.get("id"))
        return data.get("id", "")

    async def update_claim_record(self, claim_id: str, updates: dict[str, Any]) -> str:
        """Patch the CRM row whose "Claim ID" matches."""
        found = await self._request(
            "find_claim_record", "GET", f"/{CLAIMS_TABLE}",
            params={"filterByFormula": f"{{Claim ID}}='{claim_id}'", "maxRecords": 1},
        )
        records = found.get("records") or []
        if not records:
            raise IntegrationError(PROVIDER, "update_claim_record", f"no CRM row for {claim_id}")
        record_id = records[0]["id"]
        await self._request(
            "update_claim_record", "PATCH", f"/{CLAIMS_TABLE}/{record_id}",
            json={"fields": updates, "typecast": True},
        )
        return record_id

    async def create_payment_record(self, claim: Claim, payment: Payment) -> str:
        fields = {
            "Claim ID": claim.claim_id,
            "Passenger Email": claim.email,
            "Compensation Amount": _money(payment.compensation_amount),
            "Commission Amount": _money(payment.commission_amount),
            "Payment Method": payment.payment_method or "",
            "Status": payment.status,
            "Created At": datetime.now(timezone.utc).isoformat(),
        }
        data = await self._request(
            "create_payment_record", "POST", f"/{PAYMENTS_TABLE}",
            json={"fields": fields, "typecast": True},
        )
        return data.get("id", "")
