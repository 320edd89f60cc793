"""
Referral Fraud Engine

Scores referral signups for fraud risk from device, network, account,
behavioral and referral-graph evidence, and maps the score to an
actionable decision.
"""

__version__ = "1.0.0"
