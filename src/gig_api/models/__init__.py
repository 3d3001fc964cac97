"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from gig_api.models.audit_log import AuditChainHead, AuditLogEntry
from gig_api.models.bid import Bid
from gig_api.models.fraud_alert import FraudAlert
from gig_api.models.fraud_case import FraudCase
from gig_api.models.message import Message
from gig_api.models.payment import Payment
from gig_api.models.project import Project
from gig_api.models.user import User

__all__ = [
    "AuditChainHead",
    "AuditLogEntry",
    "Bid",
    "FraudAlert",
    "FraudCase",
    "Message",
    "Payment",
    "Project",
    "User",
]
