"""
Automation webhook exports.
"""

from .forwarder import BUSY_REPLY, MAINTENANCE_REPLY, AutomationForwarder, AutomationReply

__all__ = [
    "AutomationForwarder",
    "AutomationReply",
    "MAINTENANCE_REPLY",
    "BUSY_REPLY",
]
