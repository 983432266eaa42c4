"""
Versioned consent documents shown to users before they agree.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from app.models.enums import ConsentCategory, ConsentType
from app.storage.artifact_store import ArtifactStore
from app.storage.paths import consent_document_filename

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ConsentDocument:
    type: ConsentType
    title: str
    content: str
    version: str
    mandatory: bool
    category: ConsentCategory

    @property
    def filename(self) -> str:
        return consent_document_filename(self.type.value, self.version)


_TERMS = """## 1. Service Description
We help passengers claim APPR compensation for flight delays at Montreal-Trudeau (YUL) and other Canadian airports.

## 2. Commission Structure
We charge a 15% commission on successful claims only. No win, no fee.

## 3. User Responsibilities
- Provide accurate flight information
- Submit required documentation
- Respond to our communications promptly

## 4. Limitation of Liability
Our liability is limited to the amount of commission received for your specific claim.

## 5. Governing Law
These terms are governed by Quebec law and Canadian federal regulations."""

_PRIVACY = """## 1. Information Collection
We collect flight details, personal information, and supporting documents necessary for APPR claims.

## 2. Use of Information
Your information is used solely to process compensation claims and to keep you informed about them.

## 3. Information Sharing
We share your information only with airlines and regulatory authorities as required for claim processing.

## 4. Your Rights
You may request access, correction, or deletion of your personal information subject to regulatory requirements.

## 5. Compliance
This policy complies with PIPEDA and Quebec's Law 25."""

_DATA_RETENTION = """## 1. Retention Period
Claim data is retained for 1 year minimum per APPR requirements, even if you delete your account.

## 2. Personal Data Deletion
You may request deletion of personal information (name, email), but claim-related data must be retained for regulatory compliance.

## 3. Regulatory Requirements
APPR regulations require airlines and service providers to maintain claim records for audit purposes."""

_POA = """## 1. Authorization Scope
You authorize us to act on your behalf for APPR compensation claims related to your specified flight.

## 2. Authorized Actions
We may submit claims, negotiate with airlines, communicate with regulators, and collect compensation on your behalf.

## 3. Commission Agreement
We deduct our 15% commission from any compensation received and remit the balance (85%) to you.

## 4. Revocation
You may revoke this authorization with 7 days written notice."""

_MARKETING = """## 1. Marketing Communications
We may send you updates about flight compensation rights, new services, and relevant travel information.

## 2. Frequency
No more than once per week.

## 3. Opt-Out
You may unsubscribe at any time using the link in our emails.

## 4. Compliance
This consent complies with CASL (Canada's Anti-Spam Legislation)."""


def build_documents(version: str) -> dict[ConsentType, ConsentDocument]:
    reg, claim, mkt = ConsentCategory.REGISTRATION, ConsentCategory.CLAIM, ConsentCategory.MARKETING
    docs = (
        ConsentDocument(ConsentType.TERMS, "Terms of Service", _TERMS, version, True, reg),
        ConsentDocument(ConsentType.PRIVACY, "Privacy Policy", _PRIVACY, version, True, reg),
        ConsentDocument(ConsentType.DATA_RETENTION, "Data Retention Policy", _DATA_RETENTION, version, True, reg),
        ConsentDocument(ConsentType.POWER_OF_ATTORNEY, "Power of Attorney Agreement", _POA, version, True, claim),
        ConsentDocument(ConsentType.MARKETING, "Email Marketing Consent", _MARKETING, version, False, mkt),
    )
    return {d.type: d for d in docs}


def render_document(doc: ConsentDocument) -> str:
    return (
        f"# {doc.title}\n"
        f"Version: {doc.version}\n"
        f"Category: {doc.category.value}\n"
        f"Mandatory: {str(doc.mandatory).lower()}\n"
        f"Generated: {datetime.now(timezone.utc).isoformat()}\n"
        f"\n---\n\n{doc.content}\n"
    )


def publish_documents(store: ArtifactStore, version: str) -> list[ConsentDocument]:
    """Write the consent documents for ``version``. Returns the ones newly written."""
    written = []
    for doc in build_documents(version).values():
        if store.exists(doc.filename):
            continue
        store.save_text(doc.filename, render_document(doc))
        written.append(doc)
    if written:
        logger.info("consent_documents_published", version=version, count=len(written))
    return written
