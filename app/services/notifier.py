"""Out-of-band notification delivery."""
import logging
from typing import Optional

from telegram import Bot
from telegram.error import TelegramError

from app.config import settings
from app.models.user import UserModel


logger = logging.getLogger(__name__)


class Notifier:
    """Delivers a message to one recipient over a channel. Fire-and-forget."""

    async def notify(self, channel: str, recipient: str, message: str) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Records deliveries in the log. Used for channels without a provider."""

    async def notify(self, channel: str, recipient: str, message: str) -> None:
        logger.info("Notify via %s to %s: %s", channel, recipient, message)


class TelegramNotifier(Notifier):
    """Sends Telegram messages through the bot API, other channels go to the fallback."""

    def __init__(self, token: str, fallback: Optional[Notifier] = None):
        self.bot = Bot(token=token)
        self.fallback = fallback or LoggingNotifier()

    async def notify(self, channel: str, recipient: str, message: str) -> None:
        if channel != "telegram":
            await self.fallback.notify(channel, recipient, message)
            return
        try:
            await self.bot.send_message(chat_id=recipient, text=message)
        except TelegramError as e:
            logger.error("Telegram delivery to %s failed: %s", recipient, e)


def channel_for(user: UserModel) -> tuple:
    """Preferred (channel, recipient) for a user."""
    if user.telegram_chat_id:
        return "telegram", user.telegram_chat_id
    return "email", str(user.email)


def get_notifier() -> Notifier:
    """Notifier dependency: Telegram when a bot token is configured."""
    if settings.telegram_bot_token:
        return TelegramNotifier(settings.telegram_bot_token)
    return LoggingNotifier()
