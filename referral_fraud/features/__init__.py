# Feature Module
from .fingerprint import FingerprintNormalizer, normalize_language, normalize_resolution
from .email import email_domain, normalize_email, split_email

__all__ = [
    "FingerprintNormalizer",
    "normalize_language",
    "normalize_resolution",
    "email_domain",
    "normalize_email",
    "split_email",
]
