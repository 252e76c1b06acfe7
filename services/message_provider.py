"""Congratulation text shown when a gift is revealed."""

from __future__ import annotations

import asyncio
import random
from typing import Optional, Protocol

import aiohttp

from core import get_logger, MessageDefaults
from core.exceptions import ProviderFailureError

logger = get_logger(__name__)


class MessageProvider(Protocol):
    async def generate(self, participant_name: str, gift_number: int, gift_description: str) -> str:
        ...


def fallback_message(participant_name: str, gift_number: int) -> str:
    """Deterministic text used whenever a provider cannot deliver."""
    return MessageDefaults.FALLBACK_TEMPLATE.format(name=participant_name, number=gift_number)


class TemplateMessageProvider:
    """Offline provider picking one of a fixed set of templates."""

    def __init__(
        self,
        templates: tuple[str, ...] = MessageDefaults.TEMPLATES,
        delay: float = MessageDefaults.DELAY_MS / 1000,
        rng: Optional[random.Random] = None,
    ) -> None:
        if not templates:
            raise ValueError("At least one template is required")
        self.templates = templates
        self.delay = delay
        self._rng = rng or random.Random()

    async def generate(self, participant_name: str, gift_number: int, gift_description: str) -> str:
        # Short pause so the reveal does not feel instant on the projector
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        template = self._rng.choice(self.templates)
        return template.format(name=participant_name, number=gift_number)


class RemoteMessageProvider:
    """Asks a text-generation endpoint for the congratulation.

    The endpoint receives ``{participant_name, gift_number, gift_description}``
    and must answer ``{"text": "..."}``.
    """

    def __init__(self, endpoint: str, api_key: str = "", timeout: float = MessageDefaults.TIMEOUT) -> None:
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def generate(self, participant_name: str, gift_number: int, gift_description: str) -> str:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        payload = {
            "participant_name": participant_name,
            "gift_number": gift_number,
            "gift_description": gift_description,
        }
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.endpoint, json=payload, headers=headers) as response:
                    if response.status != 200:
                        raise ProviderFailureError(f"Message endpoint answered HTTP {response.status}")
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise ProviderFailureError(f"Message endpoint unreachable: {e}") from e

        text = data.get("text") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text.strip():
            raise ProviderFailureError("Message endpoint returned no text")
        return text.strip()


class CongratulationService:
    """Wraps a provider so callers always get a usable string."""

    def __init__(self, provider: MessageProvider, max_length: int = MessageDefaults.MAX_LENGTH) -> None:
        self.provider = provider
        self.max_length = max_length

    async def generate_message(self, participant_name: str, gift_number: int, gift_description: str) -> str:
        """Generate the reveal message, never raising.

        Any provider failure, including an empty answer, is replaced by
        :func:`fallback_message`.
        """
        try:
            text = await self.provider.generate(participant_name, gift_number, gift_description)
        except asyncio.CancelledError:
            raise
        except ProviderFailureError as e:
            logger.warning(f"Message provider failed for gift #{gift_number}: {e}")
            return fallback_message(participant_name, gift_number)
        except Exception as e:
            logger.error(f"Unexpected message provider error for gift #{gift_number}: {e}", exc_info=True)
            return fallback_message(participant_name, gift_number)

        if not isinstance(text, str) or not text.strip():
            logger.warning(f"Message provider returned empty text for gift #{gift_number}")
            return fallback_message(participant_name, gift_number)
        return text.strip()[: self.max_length]


def build_message_service(config) -> CongratulationService:
    """Create the message service selected by ``MESSAGE_PROVIDER``."""
    if config.message_provider == "remote":
        provider: MessageProvider = RemoteMessageProvider(
            endpoint=config.message_endpoint,
            api_key=config.message_api_key,
            timeout=config.message_timeout,
        )
        logger.info(f"Using remote message provider at {config.message_endpoint}")
    else:
        provider = TemplateMessageProvider(delay=config.message_delay_ms / 1000)
        logger.info("Using offline template message provider")
    return CongratulationService(provider)
