"""
Reference Data

Static lookup sets consumed by the detectors:
- Disposable email domains
- Hosting / VPN IP prefixes (datacenter ranges)

The built-in lists are a baseline. Operators can point
REFERENCE_DATA_PATH at a YAML file to replace them, and reload it
at runtime without a deployment.
"""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("referral_fraud.reference")


DEFAULT_DISPOSABLE_DOMAINS = frozenset({
    "tempmail.com", "throwaway.email", "guerrillamail.com", "10minutemail.com",
    "mailinator.com", "fakeinbox.com", "trashmail.com", "getnada.com",
    "temp-mail.org", "mohmal.com", "dispostable.com", "sharklasers.com",
    "yopmail.com", "maildrop.cc", "mailnesia.com", "tempail.com",
})

DEFAULT_DATACENTER_PREFIXES = (
    "104.238.", "45.33.", "45.79.", "96.126.",    # Linode
    "159.89.", "138.68.", "167.99.", "206.189.",  # DigitalOcean
    "35.192.", "35.224.", "35.240.",              # Google Cloud
    "52.0.", "54.0.", "18.0.",                    # AWS
)


class ReferenceData(BaseModel):
    """Lookup sets used by the account and network detectors."""

    disposable_email_domains: frozenset[str] = Field(
        default=DEFAULT_DISPOSABLE_DOMAINS,
        description="Email domains issued by throwaway mailbox providers",
    )
    datacenter_ip_prefixes: tuple[str, ...] = Field(
        default=DEFAULT_DATACENTER_PREFIXES,
        description="IP prefixes of known hosting and VPN ranges",
    )

    @field_validator("disposable_email_domains", mode="before")
    @classmethod
    def _lowercase_domains(cls, value):
        return frozenset(str(domain).strip().lower() for domain in value if str(domain).strip())

    @field_validator("datacenter_ip_prefixes", mode="before")
    @classmethod
    def _strip_prefixes(cls, value):
        return tuple(str(prefix).strip() for prefix in value if str(prefix).strip())

    def is_disposable_domain(self, domain: str) -> bool:
        """Check if an email domain belongs to a disposable provider."""
        return bool(domain) and domain.lower() in self.disposable_email_domains

    def is_datacenter_ip(self, ip_address: str) -> bool:
        """Check if an IP falls inside a known hosting/VPN prefix."""
        return any(ip_address.startswith(prefix) for prefix in self.datacenter_ip_prefixes)


class ReferenceDataLoader:
    """
    Holds the active reference data and reloads it from YAML.

    A failed reload keeps the previous data in place.
    """

    def __init__(
        self,
        data: Optional[ReferenceData] = None,
        path: Optional[Path] = None,
    ):
        """
        Initialize loader.

        Args:
            data: Initial reference data (if None, uses built-in defaults)
            path: Optional YAML file to load on startup and on reload()
        """
        self.data = data if data is not None else ReferenceData()
        self.path = path

        if path and path.exists():
            self.reload()

    def reload(self) -> bool:
        """
        Reload reference data from the YAML file.

        Returns:
            True if reload successful
        """
        if not self.path or not self.path.exists():
            return False

        try:
            with open(self.path) as f:
                config = yaml.safe_load(f) or {}

            self.data = ReferenceData(**config)
            logger.info(
                "Reference data loaded: %d disposable domains, %d datacenter prefixes",
                len(self.data.disposable_email_domains),
                len(self.data.datacenter_ip_prefixes),
            )
            return True
        except Exception as e:
            logger.warning("Reference data reload failed: %s", e)
            return False
