# Evidence Module
from .repository import EvidenceRepository
from .memory import InMemoryEvidenceRepository
from .archive import AssessmentArchive, archive_from_settings
from .redis_repository import RedisEvidenceRepository
from .windows import SlidingWindowCounter

__all__ = [
    "EvidenceRepository",
    "InMemoryEvidenceRepository",
    "AssessmentArchive",
    "archive_from_settings",
    "RedisEvidenceRepository",
    "SlidingWindowCounter",
]
