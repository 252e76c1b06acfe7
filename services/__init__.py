"""Services package."""

from .async_runner import set_main_loop, run_coroutine_sync, call_in_loop
from .entity_store import EntityStore
from .selector import RandomSelector
from .draw_machine import DrawStateMachine
from .message_provider import (
    CongratulationService,
    TemplateMessageProvider,
    RemoteMessageProvider,
    build_message_service,
    fallback_message,
)
from .persistence import (
    DebouncedSaver,
    JsonFileBackend,
    PersistenceGateway,
    SQLiteSnapshotBackend,
)
from .draw_runtime import DrawRuntime, create_runtime

__all__ = [
    "set_main_loop",
    "run_coroutine_sync",
    "call_in_loop",
    "EntityStore",
    "RandomSelector",
    "DrawStateMachine",
    "CongratulationService",
    "TemplateMessageProvider",
    "RemoteMessageProvider",
    "build_message_service",
    "fallback_message",
    "DebouncedSaver",
    "JsonFileBackend",
    "PersistenceGateway",
    "SQLiteSnapshotBackend",
    "DrawRuntime",
    "create_runtime",
]
