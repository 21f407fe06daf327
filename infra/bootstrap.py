"""
Infrastructure initialization and bootstrap.

Singleton pattern for creating the channel, queue, integrations and bot
from configuration. Routers receive them through the get_* dependencies.
"""

from typing import Optional

from agent.bot import MasjidBot
from inference import ModelBackend
from services.automation import AutomationForwarder
from services.prayer import PrayerTimeResolver
from services.queue import MessageQueue
from services.sheets import SheetsStore
from transport.base import OutboundChannel

from .config import InfraConfig, get_config


class InfraBootstrap:
    """
    Bootstrap infrastructure based on configuration.

    Singleton pattern - single instance per process.
    """

    _instance: Optional["InfraBootstrap"] = None

    def __init__(self, config: Optional[InfraConfig] = None):
        """Initialize bootstrap with configuration."""
        self.config = config or get_config()
        self.channel = self.config.create_channel()
        self.queue = self.config.create_queue(self.channel)
        self.sheets = self.config.create_sheets_store()
        self.prayer = self.config.create_prayer_resolver()
        self.automation = self.config.create_automation_forwarder()
        self.llm_backend = self.config.create_llm_backend()
        self.bot = MasjidBot(
            channel=self.channel,
            queue=self.queue,
            sheets=self.sheets,
            automation=self.automation,
            admin_numbers=self.config.admin_numbers,
            broadcast_delay=self.config.broadcast_delay_s,
            gateway_url=self.config.waha_base_url,
        )

    @classmethod
    def get_instance(cls, config: Optional[InfraConfig] = None) -> "InfraBootstrap":
        """
        Get singleton instance.

        Args:
            config: Optional custom configuration (only used first time)

        Returns:
            Singleton InfraBootstrap instance
        """
        if cls._instance is None:
            cls._instance = cls(config)
        return cls._instance

    @classmethod
    def reset(cls):
        """Reset singleton (for testing)."""
        cls._instance = None

    @classmethod
    def current(cls) -> Optional["InfraBootstrap"]:
        """The instance if bootstrapped, else None (does not create one)."""
        return cls._instance

    def get_channel(self) -> OutboundChannel:
        return self.channel

    def get_queue(self) -> MessageQueue:
        return self.queue

    def get_sheets(self) -> SheetsStore:
        return self.sheets

    def get_prayer_resolver(self) -> PrayerTimeResolver:
        return self.prayer

    def get_automation(self) -> AutomationForwarder:
        return self.automation

    def get_llm_backend(self) -> ModelBackend:
        return self.llm_backend

    def get_bot(self) -> MasjidBot:
        return self.bot

    async def shutdown(self) -> None:
        """Stop the queue's drain loop."""
        await self.queue.close()

    def __repr__(self) -> str:
        """String representation showing configured backends."""
        return (
            f"InfraBootstrap(channel={self.config.channel_backend}, "
            f"session={self.config.session_name}, "
            f"sheets={'on' if self.sheets.is_configured() else 'off'}, "
            f"automation={'on' if self.automation.is_configured() else 'off'}, "
            f"llm={self.config.llm_backend}, "
            f"admins={len(self.config.admin_numbers)})"
        )


def bootstrap_infrastructure(config: Optional[InfraConfig] = None) -> InfraBootstrap:
    """
    Bootstrap all infrastructure backends.

    Args:
        config: Optional custom configuration

    Returns:
        InfraBootstrap instance with all backends initialized
    """
    return InfraBootstrap.get_instance(config)


def get_infra() -> InfraBootstrap:
    """FastAPI dependency: the process-wide infrastructure."""
    return InfraBootstrap.get_instance()
