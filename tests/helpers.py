"""Shared test doubles and roster builders."""

import asyncio
import copy

from config import DrawSettings
from core import MessagePolicy
from core.exceptions import ProviderFailureError, StorageUnavailableError
from database.models import Gift, Participant


FAST_SETTINGS = DrawSettings(
    roulette_duration=0.05,
    roulette_interval=0.01,
    skip_announcement=False,
    message_policy=MessagePolicy.FIRE_AND_FORGET,
)


def make_roster(size: int = 3, gifts: int | None = None):
    """Participants ``1..size`` and gifts ``1..gifts`` labelled 101, 102, ..."""
    participants = [Participant(id=i, name=f"Person {i}") for i in range(1, size + 1)]
    gift_list = [
        Gift(id=i, number=100 + i, description=f"Gift box {i}")
        for i in range(1, (gifts if gifts is not None else size) + 1)
    ]
    return participants, gift_list


class StaticMessageProvider:
    """Answers immediately with a predictable text."""

    def __init__(self):
        self.calls = []

    async def generate(self, participant_name, gift_number, gift_description):
        self.calls.append((participant_name, gift_number, gift_description))
        return f"Hooray {participant_name}, gift #{gift_number} is yours"


class FailingMessageProvider:
    async def generate(self, participant_name, gift_number, gift_description):
        raise ProviderFailureError("text service is down")


class GatedMessageProvider:
    """Holds every answer until ``release()`` is called."""

    def __init__(self):
        self.gate = asyncio.Event()

    def release(self):
        self.gate.set()

    async def generate(self, participant_name, gift_number, gift_description):
        await self.gate.wait()
        return f"Late message for {participant_name}"


class MemoryBackend:
    """In-memory storage tier with switchable failures."""

    def __init__(self, name="memory", document=None, fail_writes=False, fail_reads=False):
        self.name = name
        self.document = copy.deepcopy(document)
        self.fail_writes = fail_writes
        self.fail_reads = fail_reads
        self.writes = 0

    async def read(self):
        if self.fail_reads:
            raise StorageUnavailableError(self.name, "read blocked")
        return copy.deepcopy(self.document)

    async def write(self, record):
        if self.fail_writes:
            raise StorageUnavailableError(self.name, "quota exceeded")
        self.document = copy.deepcopy(record)
        self.writes += 1


