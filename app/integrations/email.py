"""
Transactional email over SMTP.
The blocking smtplib exchange runs in a worker thread.
"""

import asyncio
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional

import structlog

from app.integrations.base import IntegrationError, IntegrationNotConfigured, instrumented
from app.integrations.templates import render
from app.models.tables import Claim, Payment

logger = structlog.get_logger(__name__)

PROVIDER = "smtp"

STATUS_MESSAGES = {
    "under-review": "Our team is now reviewing your claim with the airline.",
    "approved": "Good news: your claim has been approved.",
    "rejected": "Unfortunately your claim could not be approved.",
    "paid": "Your compensation has been paid.",
}


@dataclass
class SmtpConfig:
    host: Optional[str]
    port: int = 587
    user: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    from_name: str = "YUL Flight Claims"


class EmailNotifier:
    def __init__(self, config: SmtpConfig, payment_instructions: str = "", timeout: float = 30.0):
        self.config = config
        self.payment_instructions = payment_instructions
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.config.host and self.config.user)

    def _build(self, to: str, subject: str, template: str, **context) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = f'"{self.config.from_name}" <{self.config.user}>'
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(render(f"email/{template}.txt", **context))
        msg.add_alternative(render(f"email/{template}.html", **context), subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.config.host, self.config.port, timeout=self.timeout) as server:
            if self.config.use_tls:
                server.starttls()
            if self.config.user and self.config.password:
                server.login(self.config.user, self.config.password)
            server.send_message(msg)

    async def _send(self, operation: str, to: str, subject: str, template: str, **context) -> None:
        if not self.configured:
            raise IntegrationNotConfigured(PROVIDER, operation)
        msg = self._build(to, subject, template, **context)
        async with instrumented(PROVIDER, operation):
            try:
                await asyncio.to_thread(self._deliver, msg)
            except (smtplib.SMTPException, OSError) as e:
                raise IntegrationError(PROVIDER, operation, str(e)) from e
        logger.info("email_sent", operation=operation, to=to, subject=subject)

    async def send_claim_confirmation(self, claim: Claim) -> None:
        net = None
        if claim.compensation_amount is not None and claim.commission_amount is not None:
            net = claim.compensation_amount - claim.commission_amount
        await self._send(
            "claim_confirmation", claim.email, f"Claim Confirmation - {claim.claim_id}",
            "claim_confirmation", claim=claim, net_amount=net,
        )

    async def send_status_update(self, claim: Claim, notes: Optional[str] = None) -> None:
        message = notes or STATUS_MESSAGES.get(
            claim.status, f"Your claim status has been updated to: {claim.status}"
        )
        await self._send(
            "status_update", claim.email, f"Claim Update - {claim.claim_id}",
            "status_update", claim=claim, status_message=message,
        )

    async def send_commission_invoice(self, claim: Claim) -> None:
        """For claims paid to the passenger directly (no POA): bill the commission."""
        await self._send(
            "commission_invoice", claim.email, f"Commission Invoice - Claim {claim.claim_id}",
            "commission_invoice", claim=claim, payment_instructions=self.payment_instructions,
        )

    async def send_payment_confirmation(self, claim: Claim, payment: Payment) -> None:
        await self._send(
            "payment_confirmation", claim.email, f"Payment Processed - Claim {claim.claim_id}",
            "payment_confirmation", claim=claim, payment=payment,
        )

