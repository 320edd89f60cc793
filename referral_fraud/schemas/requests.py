"""
API Request Schemas

Payloads accepted by the HTTP layer. The assessment request mirrors
`ReferralFraudAssessor.assess_signup`; the event payloads let the host
write the evidence the detectors read.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..utils.timeutils import ensure_utc
from .device import DeviceAttributes
from .signup import NetworkClassification


class AssessmentRequest(BaseModel):
    """Assess one referral signup."""
    user_id: str = Field(..., min_length=1, description="Candidate user id")
    email: str = Field(default="", description="Signup email")
    device: DeviceAttributes = Field(default_factory=DeviceAttributes)
    referrer_id: Optional[str] = None
    referral_code: Optional[str] = None
    ip_address: Optional[str] = None
    network: Optional[NetworkClassification] = None
    occurred_at: Optional[datetime] = None

    @field_validator("occurred_at")
    @classmethod
    def normalize_occurred_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Naive timestamps are taken as UTC."""
        return ensure_utc(v) if v is not None else None


class SignupEvent(BaseModel):
    """A completed signup (feeds IP windows and email similarity)."""
    user_id: str = Field(..., min_length=1)
    email: Optional[str] = None
    ip_address: Optional[str] = None
    occurred_at: Optional[datetime] = None

    @field_validator("occurred_at")
    @classmethod
    def normalize_occurred_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Naive timestamps are taken as UTC."""
        return ensure_utc(v) if v is not None else None


class ReferralEvent(BaseModel):
    """An accepted referral edge (referrer -> referred)."""
    referrer_id: str = Field(..., min_length=1)
    referred_id: str = Field(..., min_length=1)
    created_at: Optional[datetime] = None

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None


class ReviewRequest(BaseModel):
    """Analyst verdict on a flagged assessment."""
    approved: bool
    reviewer_notes: str = Field(default="", max_length=2000)
