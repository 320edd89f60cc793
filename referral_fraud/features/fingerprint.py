"""
Fingerprint Normalizer

Turns a raw device attribute bag into a canonical DeviceFingerprint.

Normalization rules:
- Text fields are stripped; blank or missing values become "unknown"
- Resolution pairs become "WxH"; string resolutions are lowercased
  and have their whitespace removed ("1170 X 2532" -> "1170x2532")
- Language tags are reduced to their primary subtag ("en-US" -> "en")
- A missing carrier stays None on the record and hashes as "unknown"

The hash covers a fixed field order, so absence of an optional field
never shifts the hash composition.
"""

from datetime import datetime, UTC
from typing import Any, Callable, Mapping, Optional, Union
from uuid import uuid4

from ..schemas import DeviceAttributes, DeviceFingerprint, UNKNOWN


def _text(value: Any) -> str:
    if value is None:
        return UNKNOWN
    text = str(value).strip()
    return text or UNKNOWN


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_resolution(value: Any) -> str:
    """Render a resolution as 'WxH'."""
    if value is None:
        return UNKNOWN
    if isinstance(value, (tuple, list)) and len(value) == 2:
        try:
            width, height = (int(round(float(v))) for v in value)
        except (TypeError, ValueError):
            return UNKNOWN
        return f"{width}x{height}"
    text = "".join(str(value).split()).lower()
    return text or UNKNOWN


def normalize_language(value: Any) -> str:
    """Reduce a language tag to its lowercased primary subtag."""
    text = _text(value)
    if text == UNKNOWN:
        return text
    primary = text.replace("_", "-").split("-")[0].lower()
    return primary or UNKNOWN


class FingerprintNormalizer:
    """
    Builds DeviceFingerprint records from raw attributes.

    Has no side effects beyond generating a fingerprint id and
    reading the clock for `created_at`.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize normalizer.

        Args:
            clock: Returns the current time (defaults to UTC now)
        """
        self.clock = clock if clock is not None else (lambda: datetime.now(UTC))

    def normalize(
        self,
        attributes: Union[DeviceAttributes, Mapping[str, Any], None],
    ) -> DeviceFingerprint:
        """
        Normalize raw device attributes.

        Args:
            attributes: DeviceAttributes or a plain mapping of the same fields

        Returns:
            Canonical DeviceFingerprint
        """
        if attributes is None:
            raw: Mapping[str, Any] = {}
        elif isinstance(attributes, DeviceAttributes):
            raw = attributes.model_dump()
        else:
            raw = attributes

        return DeviceFingerprint(
            fingerprint_id=str(uuid4()),
            device_model=_text(raw.get("device_model")),
            system_version=_text(raw.get("system_version")),
            screen_resolution=normalize_resolution(raw.get("screen_resolution")),
            timezone=_text(raw.get("timezone")),
            language=normalize_language(raw.get("language")),
            carrier=_optional_text(raw.get("carrier")),
            is_simulator=bool(raw.get("is_simulator", False)),
            is_jailbroken=bool(raw.get("is_jailbroken", False)),
            advertising_id=_optional_text(raw.get("advertising_id")),
            vendor_id=_text(raw.get("vendor_id")),
            created_at=self.clock(),
        )
