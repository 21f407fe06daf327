"""
Webhook module - FastAPI route handlers under /webhook.

Includes:
- waha.py: Inbound gateway events
- outbound.py: Send message / image / broadcast
- admin.py: Admin commands (allow-listed numbers only)
- automation.py: n8n, prayer notification and status webhooks
"""

from webhook.admin import router as admin_router
from webhook.automation import router as automation_router
from webhook.outbound import router as outbound_router
from webhook.waha import router as waha_router

__all__ = ["waha_router", "outbound_router", "admin_router", "automation_router"]
