# Assessment orchestration
from .assembler import ReferralFraudAssessor

__all__ = ["ReferralFraudAssessor"]
