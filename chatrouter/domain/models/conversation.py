from typing import Dict, Any, List, Optional, Tuple, TYPE_CHECKING
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, StrictInt
from datetime import datetime, timezone
from enum import Enum
import asyncio
import weakref

if TYPE_CHECKING:
    from chatrouter.domain.orchestration.router import MessageRouter


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    """Author of a conversation turn"""
    USER = "user"
    ASSISTANT = "assistant"


class ConversationMessage(BaseModel):
    """One turn of a conversation. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)


class ModuleDescriptor(BaseModel):
    """Static identity of a capability module"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Unique, human-readable module name")
    description: str = Field(default="", description="What the module does")
    priority: StrictInt = Field(default=100, description="Lower value is examined first")


class ModuleInfo(BaseModel):
    """Public summary of a registered module"""
    name: str
    description: str


class ConversationContext(BaseModel):
    """State of one logical conversation, keyed by the platform conversation id.

    The history is mutated by the router only. Modules should read it through
    ``history_snapshot()``.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    conversation_id: str = Field(description="Platform-assigned conversation id (e.g. chat id)")
    user_id: Optional[str] = Field(None, description="Platform user id of the sender")
    history: List[ConversationMessage] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Platform, correlation id, ...")
    created_at: datetime = Field(default_factory=utc_now)
    last_activity: datetime = Field(default_factory=utc_now)

    _router_ref: Any = PrivateAttr(default=None)
    _logger: Any = PrivateAttr(default=None)
    _lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)

    @property
    def router(self) -> Optional["MessageRouter"]:
        """Router currently serving this conversation, if it is still alive"""
        if self._router_ref is None:
            return None
        return self._router_ref()

    def attach_router(self, router: "MessageRouter") -> None:
        self._router_ref = weakref.ref(router)

    @property
    def logger(self) -> Any:
        """Request logger bound by the router for the current call"""
        return self._logger

    @logger.setter
    def logger(self, value: Any) -> None:
        self._logger = value

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    def history_snapshot(self) -> Tuple[ConversationMessage, ...]:
        return tuple(self.history)

    def touch(self) -> None:
        self.last_activity = utc_now()
