"""
SQLAlchemy ORM models.
Column types stay portable: JSON maps to JSONB on PostgreSQL.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.database import Base
from app.models.enums import ClaimStatus, PaymentStatus, UserRole

JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ────────────────────────────────────────────────────────────
# CLAIMS
# ────────────────────────────────────────────────────────────
class Claim(Base):
    __tablename__ = "claims"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    claim_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    # Passenger facts
    passenger_name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)

    # Flight facts
    flight_number: Mapped[str] = mapped_column(String(10), nullable=False)
    flight_date: Mapped[str] = mapped_column(String(10), nullable=False)
    airline: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    departure_airport: Mapped[str] = mapped_column(String(10), nullable=False)
    arrival_airport: Mapped[str] = mapped_column(String(10), nullable=False)
    issue_type: Mapped[str] = mapped_column(String(30), nullable=False)
    delay_duration: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    delay_reason: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # Documents
    documents_urls: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Financial facts
    compensation_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    commission_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    meal_voucher_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    # Process facts
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ClaimStatus.SUBMITTED.value
    )
    status_history: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    eligibility_validation: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    poa_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    poa_signed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    poa_envelope_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    poa_document_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
        server_default=func.now()
    )

    payments = relationship("Payment", back_populates="claim")

    __table_args__ = (
        Index("idx_claims_email", "email"),
        Index("idx_claims_status", "status"),
        Index("idx_claims_created", "created_at"),
        Index("idx_claims_envelope", "poa_envelope_id"),
    )


# ────────────────────────────────────────────────────────────
# PAYMENTS
# ────────────────────────────────────────────────────────────
class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    claim_pk: Mapped[int] = mapped_column(
        Integer, ForeignKey("claims.id", ondelete="RESTRICT"), nullable=False
    )
    claim_id: Mapped[str] = mapped_column(String(50), nullable=False)
    compensation_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_method: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.COMPLETED.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    claim = relationship("Claim", back_populates="payments")

    __table_args__ = (
        Index("idx_payments_claim", "claim_pk"),
    )


# ────────────────────────────────────────────────────────────
# USERS
# ────────────────────────────────────────────────────────────
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    first_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=UserRole.USER.value)

    # Registration-time agreements; the consent records are the legal proof
    terms_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    privacy_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    data_retention_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    marketing_consent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
        server_default=func.now()
    )


# ────────────────────────────────────────────────────────────
# FAQ ITEMS
# ────────────────────────────────────────────────────────────
class FaqItem(Base):
    __tablename__ = "faq_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_faq_active_order", "is_active", "order"),
    )
