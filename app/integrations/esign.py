"""
Power-of-attorney signing through the DocuSign eSignature REST API.
"""

import base64
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import httpx
import structlog

from app.integrations.base import IntegrationError, IntegrationNotConfigured, instrumented
from app.integrations.templates import render

logger = structlog.get_logger(__name__)

PROVIDER = "docusign"
TOKEN_REFRESH_MARGIN_SECONDS = 300

_HOSTS = {
    "production": ("https://www.docusign.net/restapi/v2.1", "https://account.docusign.com/oauth/token"),
    "demo": ("https://demo.docusign.net/restapi/v2.1", "https://account-d.docusign.com/oauth/token"),
}


@dataclass
class POASigningRequest:
    claim_id: str
    passenger_name: str
    passenger_email: str
    compensation_amount: Decimal
    commission_amount: Decimal


@dataclass
class SigningSession:
    envelope_id: str
    signing_url: str
    status: str


@dataclass
class EnvelopeStatus:
    status: str
    completed: bool


class DocuSignClient:
    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        account_id: Optional[str],
        environment: str = "demo",
        return_url: str = "http://localhost:8000/api/esign/callback",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.account_id = account_id
        self.api_url, self.auth_url = _HOSTS.get(environment, _HOSTS["demo"])
        self.return_url = return_url
        self.timeout = timeout
        self._transport = transport
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.account_id)

    def _client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport, **kwargs)

    async def _access_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        async with instrumented(PROVIDER, "oauth_token"):
            async with self._client() as client:
                try:
                    response = await client.post(
                        self.auth_url,
                        auth=(self.client_id, self.client_secret),
                        data={"grant_type": "client_credentials", "scope": "signature"},
                    )
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    raise IntegrationError(PROVIDER, "oauth_token", str(e)) from e
                data = response.json()

        self._token = data["access_token"]
        lifetime = int(data.get("expires_in", 3600))
        self._token_expires_at = time.monotonic() + max(0, lifetime - TOKEN_REFRESH_MARGIN_SECONDS)
        return self._token

    async def _request(self, operation: str, method: str, path: str, **kwargs) -> httpx.Response:
        if not self.configured:
            raise IntegrationNotConfigured(PROVIDER, operation)
        token = await self._access_token()
        base_url = f"{self.api_url}/accounts/{self.account_id}"
        async with instrumented(PROVIDER, operation):
            async with self._client(
                base_url=base_url, headers={"Authorization": f"Bearer {token}"}
            ) as client:
                try:
                    response = await client.request(method, path, **kwargs)
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    raise IntegrationError(PROVIDER, operation, str(e)) from e
                return response

    def render_poa(self, request: POASigningRequest) -> str:
        net = request.compensation_amount - request.commission_amount
        share = (
            (net / request.compensation_amount * 100).quantize(Decimal("0.1"))
            if request.compensation_amount
            else Decimal("85.0")
        )
        return render("poa.html", request=request, net_amount=net, passenger_share=share)

    async def create_poa_envelope(self, request: POASigningRequest) -> SigningSession:
        """Send the POA for signature and open an embedded signing view."""
        document = self.render_poa(request).encode("utf-8")
        envelope_definition = {
            "emailSubject": f"Power of Attorney (Claim: {request.claim_id})",
            "documents": [{
                "documentBase64": base64.b64encode(document).decode("ascii"),
                "name": f"POA_{request.claim_id}.html",
                "fileExtension": "html",
                "documentId": "1",
            }],
            "recipients": {
                "signers": [{
                    "email": request.passenger_email,
                    "name": request.passenger_name,
                    "recipientId": "1",
                    "clientUserId": request.claim_id,
                    "tabs": {
                        "signHereTabs": [{"documentId": "1", "pageNumber": "1", "xPosition": "400", "yPosition": "600"}],
                        "dateSignedTabs": [{"documentId": "1", "pageNumber": "1", "xPosition": "400", "yPosition": "650"}],
                    },
                }],
            },
            "status": "sent",
        }
        envelope = (await self._request("create_envelope", "POST", "/envelopes", json=envelope_definition)).json()
        envelope_id = envelope["envelopeId"]

        view = (await self._request(
            "recipient_view", "POST", f"/envelopes/{envelope_id}/views/recipient",
            json={
                "authenticationMethod": "none",
                "email": request.passenger_email,
                "userName": request.passenger_name,
                "recipientId": "1",
                "clientUserId": request.claim_id,
                "returnUrl": self.return_url,
            },
        )).json()

        logger.info("poa_envelope_created", claim_id=request.claim_id, envelope_id=envelope_id)
        return SigningSession(
            envelope_id=envelope_id, signing_url=view["url"], status=envelope.get("status", "sent")
        )

    async def get_envelope_status(self, envelope_id: str) -> EnvelopeStatus:
        envelope = (await self._request("get_envelope", "GET", f"/envelopes/{envelope_id}")).json()
        status = envelope.get("status", "unknown")
        return EnvelopeStatus(status=status, completed=status == "completed")

    async def download_signed_document(self, envelope_id: str) -> bytes:
        response = await self._request(
            "download_document", "GET", f"/envelopes/{envelope_id}/documents/combined",
            headers={"Accept": "application/pdf"},
        )
        return response.content
