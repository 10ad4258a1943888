"""Database models"""
from gatepass.models.gatepass_request import GatepassRequest, GatepassStatus

__all__ = [
    "GatepassRequest",
    "GatepassStatus",
]
