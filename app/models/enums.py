"""
Python enums for the values stored in claim, user and consent columns.
Values are the wire/storage strings and MUST NOT be renamed.
"""

from enum import Enum


class ClaimStatus(str, Enum):
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under-review"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class IssueType(str, Enum):
    DELAYED = "delayed"
    CANCELLED = "cancelled"
    DENIED_BOARDING = "denied-boarding"
    MISSED_CONNECTION = "missed-connection"


class DelayDuration(str, Enum):
    """Delay buckets offered by the claim form."""
    THREE_TO_SIX = "3-6"
    SIX_TO_NINE = "6-9"
    NINE_PLUS = "9+"


class AirlineCategory(str, Enum):
    """APPR carrier size: large carriers move 2M+ passengers a year."""
    LARGE = "large"
    SMALL = "small"


class DelayReason(str, Enum):
    # Within airline control
    MAINTENANCE_NON_SAFETY = "maintenance_non_safety"
    CREW_SCHEDULING = "crew_scheduling"
    OVERBOOKING = "overbooking"
    OPERATIONAL_DECISIONS = "operational_decisions"
    IT_FAILURE = "it_failure"
    GROUND_HANDLING = "ground_handling"
    FUELING_DEICING = "fueling_deicing"
    # Extraordinary circumstances
    WEATHER = "weather"
    ATC = "atc"
    SECURITY = "security"
    AIRPORT_FAILURE = "airport_failure"
    SAFETY_MAINTENANCE = "safety_maintenance"
    THIRD_PARTY_STRIKES = "third_party_strikes"
    GOVERNMENT_DELAYS = "government_delays"
    MEDICAL_EMERGENCIES = "medical_emergencies"
    CYBERATTACKS = "cyberattacks"


class ConsentType(str, Enum):
    TERMS = "terms"
    PRIVACY = "privacy"
    DATA_RETENTION = "data-retention"
    POWER_OF_ATTORNEY = "power-of-attorney"
    MARKETING = "marketing"


class ConsentCategory(str, Enum):
    REGISTRATION = "registration"
    CLAIM = "claim"
    MARKETING = "marketing"


class UserRole(str, Enum):
    USER = "user"
    JUNIOR_ADMIN = "junior_admin"
    SENIOR_ADMIN = "senior_admin"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class SideEffectOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


ADMIN_ROLES = frozenset({UserRole.JUNIOR_ADMIN.value, UserRole.SENIOR_ADMIN.value})

REGISTRATION_CONSENTS = (
    ConsentType.TERMS,
    ConsentType.PRIVACY,
    ConsentType.DATA_RETENTION,
)
