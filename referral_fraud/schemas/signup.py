"""
Signup Schemas

Inputs describing one referral signup under evaluation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .device import DeviceFingerprint


class NetworkClassification(BaseModel):
    """
    IP classification computed by an external provider.

    The engine does not geolocate or classify IPs itself; when the
    host has this data it is passed through as-is.
    """
    model_config = ConfigDict(frozen=True)

    is_vpn: bool = False
    is_proxy: bool = False
    is_datacenter: bool = False
    ip_country: Optional[str] = Field(default=None, description="ISO country of the IP")
    declared_country: Optional[str] = Field(default=None, description="Country the user declared")

    @property
    def country_mismatch(self) -> bool:
        if not self.ip_country or not self.declared_country:
            return False
        return self.ip_country.upper() != self.declared_country.upper()


class SignupContext(BaseModel):
    """
    Immutable snapshot of a candidate signup.

    Shared read-only by all detectors during one assessment.
    """
    model_config = ConfigDict(frozen=True)

    candidate_user_id: str
    referrer_id: Optional[str] = None
    referral_code: Optional[str] = None
    email: str = ""
    ip_address: Optional[str] = None
    fingerprint: DeviceFingerprint
    network: Optional[NetworkClassification] = None
    occurred_at: datetime

    @property
    def is_referred(self) -> bool:
        return bool(self.referrer_id)
