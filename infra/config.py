"""
Infrastructure configuration system.

Environment-based backend selection with sensible defaults.
Optional integrations left unset are still constructed; they report
"not configured" instead of failing.
"""

import os
from typing import FrozenSet, Optional, Literal
from dataclasses import dataclass, field

from inference import ModelBackend, StubModelBackend, OpenRouterModelBackend
from services.automation import AutomationForwarder
from services.prayer import PrayerTimeResolver
from services.queue import MessageQueue
from services.sheets import SheetsStore
from transport.base import OutboundChannel
from transport.identifiers import parse_identifier_list
from transport.stub import StubChannel
from transport.waha import WAHAClient


ChannelBackendType = Literal["waha", "stub"]
LLMBackendType = Literal["openrouter", "stub"]


@dataclass
class InfraConfig:
    """Infrastructure configuration from environment."""

    # Gateway
    channel_backend: ChannelBackendType
    waha_base_url: str
    waha_api_key: str
    session_name: str
    webhook_url: Optional[str]
    webhook_hmac_key: Optional[str]

    # Queue
    send_delay_s: float
    retry_backoff_s: float
    max_attempts: int
    broadcast_delay_s: float

    # Integrations
    n8n_webhook_url: Optional[str]
    sheets_api_key: Optional[str]
    sheets_id: Optional[str]
    prayer_api_base: str
    myquran_api_base: str
    default_city: str

    # AI chat
    llm_backend: LLMBackendType
    openrouter_api_key: Optional[str]
    openrouter_model: str

    admin_numbers: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_env(cls) -> "InfraConfig":
        """
        Load configuration from environment variables.

        Defaults target a local WAHA container on :3000 with the
        "default" session.
        """
        return cls(
            # Gateway
            channel_backend=os.getenv("CHANNEL_BACKEND", "waha"),  # type: ignore
            waha_base_url=os.getenv("WAHA_BASE_URL", "http://localhost:3000"),
            waha_api_key=os.getenv("WAHA_API_KEY", "admin"),
            session_name=os.getenv("WA_SESSION_NAME", "default"),
            webhook_url=os.getenv("WEBHOOK_URL") or None,
            webhook_hmac_key=os.getenv("WAHA_WEBHOOK_HMAC_KEY") or None,

            # Queue
            send_delay_s=float(os.getenv("QUEUE_SEND_DELAY_S", "1.0")),
            retry_backoff_s=float(os.getenv("QUEUE_RETRY_BACKOFF_S", "5.0")),
            max_attempts=int(os.getenv("QUEUE_MAX_ATTEMPTS", "3")),
            broadcast_delay_s=float(os.getenv("BROADCAST_SEND_DELAY_S", "2.0")),

            # Integrations
            n8n_webhook_url=os.getenv("N8N_WEBHOOK_URL") or None,
            sheets_api_key=os.getenv("GOOGLE_SHEETS_API_KEY") or None,
            sheets_id=os.getenv("GOOGLE_SHEETS_ID") or None,
            prayer_api_base=os.getenv("PRAYER_API_BASE", "https://api.aladhan.com/v1"),
            myquran_api_base=os.getenv("MYQURAN_API_BASE", "https://api.myquran.com/v2"),
            default_city=os.getenv("DEFAULT_CITY", "Jakarta"),

            # AI chat
            llm_backend=os.getenv("LLM_BACKEND", "openrouter"),  # type: ignore
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or None,
            openrouter_model=os.getenv("OPENROUTER_MODEL", "z-ai/glm-4.5-air:free"),

            admin_numbers=parse_identifier_list(os.getenv("ADMIN_NUMBERS", "")),
        )

    def create_channel(self) -> OutboundChannel:
        """Create the outbound channel based on configuration."""
        if self.channel_backend == "stub":
            return StubChannel(session_name=self.session_name)
        return WAHAClient(
            base_url=self.waha_base_url,
            api_key=self.waha_api_key,
            session_name=self.session_name,
            webhook_url=self.webhook_url,
        )

    def create_queue(self, channel: OutboundChannel) -> MessageQueue:
        return MessageQueue(
            channel,
            send_delay=self.send_delay_s,
            retry_backoff=self.retry_backoff_s,
            max_attempts=self.max_attempts,
        )

    def create_sheets_store(self) -> SheetsStore:
        return SheetsStore(api_key=self.sheets_api_key, spreadsheet_id=self.sheets_id)

    def create_prayer_resolver(self) -> PrayerTimeResolver:
        return PrayerTimeResolver(
            primary_base=self.prayer_api_base,
            fallback_base=self.myquran_api_base,
        )

    def create_automation_forwarder(self) -> AutomationForwarder:
        return AutomationForwarder(webhook_url=self.n8n_webhook_url)

    def create_llm_backend(self) -> ModelBackend:
        """Create LLM backend instance based on configuration."""
        if self.llm_backend == "stub":
            return StubModelBackend()
        return OpenRouterModelBackend(
            api_key=self.openrouter_api_key or "",
            model_name=self.openrouter_model,
        )


def get_config() -> InfraConfig:
    """Get global infrastructure configuration."""
    return InfraConfig.from_env()
