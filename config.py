"""
Configuration management for the Masjid WhatsApp gateway.

Loads environment variables from .env file and provides typed access to configuration.
Everything is read once at process start; there is no hot-reload.
"""

import os
from pathlib import Path
from typing import FrozenSet

from dotenv import load_dotenv

from transport.identifiers import parse_identifier_list

# Load environment variables from .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)


class Config:
    """Configuration class for the gateway."""

    # WAHA gateway
    WAHA_BASE_URL = os.getenv("WAHA_BASE_URL", "http://localhost:3000")
    WAHA_API_KEY = os.getenv("WAHA_API_KEY", "admin")
    WA_SESSION_NAME = os.getenv("WA_SESSION_NAME", "default")
    WEBHOOK_URL = os.getenv("WEBHOOK_URL", "")
    WAHA_WEBHOOK_HMAC_KEY = os.getenv("WAHA_WEBHOOK_HMAC_KEY", "")
    CHANNEL_BACKEND = os.getenv("CHANNEL_BACKEND", "waha")

    # Admin allow-list, normalized once
    ADMIN_NUMBERS: FrozenSet[str] = parse_identifier_list(os.getenv("ADMIN_NUMBERS", ""))

    # n8n automation webhook
    N8N_WEBHOOK_URL = os.getenv("N8N_WEBHOOK_URL", "")

    # Google Sheets
    GOOGLE_SHEETS_API_KEY = os.getenv("GOOGLE_SHEETS_API_KEY", "")
    GOOGLE_SHEETS_ID = os.getenv("GOOGLE_SHEETS_ID", "")

    # Prayer times
    PRAYER_API_BASE = os.getenv("PRAYER_API_BASE", "https://api.aladhan.com/v1")
    MYQURAN_API_BASE = os.getenv("MYQURAN_API_BASE", "https://api.myquran.com/v2")
    DEFAULT_CITY = os.getenv("DEFAULT_CITY", "Jakarta")

    # AI chat
    LLM_BACKEND = os.getenv("LLM_BACKEND", "openrouter")
    OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
    OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "z-ai/glm-4.5-air:free")

    # Outbound queue pacing
    QUEUE_SEND_DELAY_S = float(os.getenv("QUEUE_SEND_DELAY_S", "1.0"))
    QUEUE_RETRY_BACKOFF_S = float(os.getenv("QUEUE_RETRY_BACKOFF_S", "5.0"))
    QUEUE_MAX_ATTEMPTS = int(os.getenv("QUEUE_MAX_ATTEMPTS", "3"))
    BROADCAST_SEND_DELAY_S = float(os.getenv("BROADCAST_SEND_DELAY_S", "2.0"))

    # Server
    PORT = int(os.getenv("PORT", "3001"))
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def missing_integrations(cls) -> list:
        """Names of optional integrations that are not configured."""
        checks = {
            "automation webhook (N8N_WEBHOOK_URL)": cls.N8N_WEBHOOK_URL,
            "google sheets (GOOGLE_SHEETS_API_KEY, GOOGLE_SHEETS_ID)": (
                cls.GOOGLE_SHEETS_API_KEY and cls.GOOGLE_SHEETS_ID
            ),
            "ai chat (OPENROUTER_API_KEY)": cls.OPENROUTER_API_KEY,
            "admin allow-list (ADMIN_NUMBERS)": cls.ADMIN_NUMBERS,
        }
        return [name for name, value in checks.items() if not value]

    @classmethod
    def validate(cls) -> bool:
        """Validate that required configuration is set."""
        required = ["WAHA_BASE_URL", "WA_SESSION_NAME"]
        missing = [key for key in required if not getattr(cls, key)]

        if missing:
            print(f"⚠️  Missing required environment variables: {', '.join(missing)}")
            print(f"   Please set them in .env file")
            return False

        return True


if __name__ == "__main__":
    # Test configuration loading
    print("Configuration loaded:")
    print(f"  WAHA URL: {Config.WAHA_BASE_URL}")
    print(f"  Session: {Config.WA_SESSION_NAME}")
    print(f"  Channel backend: {Config.CHANNEL_BACKEND}")
    print(f"  Admins: {len(Config.ADMIN_NUMBERS)} configured")
    print(f"  Port: {Config.PORT}")
    print(f"  Environment: {Config.ENVIRONMENT}")
    for name in Config.missing_integrations():
        print(f"  ✗ Not configured: {name}")
    print(f"\n  Validation: {'✓ PASSED' if Config.validate() else '✗ FAILED'}")
