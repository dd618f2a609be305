"""
Adapter base — the protocol between the engine and external executors.

The engine never shells out itself: it builds an Action, hands it to an
adapter and branches on the Receipt's typed status. Adapters are async so
every external-process invocation is a suspension point for the event
loop.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from modehub.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to run one action.

    ``buffered`` captures stdout into the receipt instead of letting it
    through to the terminal; ``forward_errors`` relays the executor's
    stderr to the log as it is collected.
    """

    action: Action
    buffered: bool = True
    forward_errors: bool = True
    verbose: bool = False
    timeout: int = 600

    @property
    def working_dir(self) -> str | None:
        """Working tree to run in, or None for the process cwd."""
        return self.action.work_tree


class Adapter(ABC):
    """Abstract base class for executors.

    Adapters perform external side effects and return receipts.
    They never raise: failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g. 'git')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the underlying tool is installed. Fast, never raises."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check the action can run. Returns (is_valid, error_message)."""

    @abstractmethod
    async def execute(self, context: ExecutionContext) -> Receipt:
        """Run the action and return a receipt. Never raises."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
