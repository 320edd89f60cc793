"""
Device Schemas

Raw device attributes as supplied by the host platform, and the
canonical fingerprint record derived from them.

The engine never probes the device itself: simulator and
jailbreak/root flags arrive as booleans computed on the client.
"""

import hashlib
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

UNKNOWN = "unknown"
HASH_SEPARATOR = "|"


class DeviceAttributes(BaseModel):
    """
    Free-form device attribute bag.

    Every field is optional; the fingerprint normalizer fills gaps
    with sentinels instead of rejecting the signup.
    """
    device_model: Optional[str] = Field(default=None, description="Hardware model, e.g. 'iPhone15,2'")
    system_version: Optional[str] = Field(default=None, description="OS version, e.g. '17.4.1'")
    screen_resolution: Optional[Union[str, tuple[int, int]]] = Field(
        default=None,
        description="Resolution as 'WxH' or a (width, height) pair",
    )
    timezone: Optional[str] = Field(default=None, description="IANA timezone id")
    language: Optional[str] = Field(default=None, description="Language tag, e.g. 'en-US'")
    carrier: Optional[str] = Field(default=None, description="Mobile carrier name")
    is_simulator: bool = Field(default=False, description="Running in an emulated environment")
    is_jailbroken: bool = Field(default=False, description="Jailbreak/root indicators present")
    advertising_id: Optional[str] = Field(default=None, description="Advertising identifier")
    vendor_id: Optional[str] = Field(default=None, description="Vendor/install identifier")


class DeviceFingerprint(BaseModel):
    """
    Canonical device fingerprint.

    `hash` covers a fixed, ordered subset of fields so the same
    physical device in the same OS/locale state always hashes the same.
    It never includes `fingerprint_id` or `created_at`.
    """
    model_config = ConfigDict(frozen=True)

    fingerprint_id: str
    device_model: str
    system_version: str
    screen_resolution: str
    timezone: str
    language: str
    carrier: Optional[str] = None
    is_simulator: bool = False
    is_jailbroken: bool = False
    advertising_id: Optional[str] = None
    vendor_id: str
    created_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def hash(self) -> str:
        """SHA-256 over the hashed fields, '|' separated."""
        components = [
            self.device_model,
            self.system_version,
            self.screen_resolution,
            self.timezone,
            self.language,
            self.carrier or UNKNOWN,
            self.vendor_id,
        ]
        combined = HASH_SEPARATOR.join(components)
        return hashlib.sha256(combined.encode("utf-8")).hexdigest()


class DeviceMatch(BaseModel):
    """A previously seen user sharing a device fingerprint hash."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    first_seen_at: datetime
