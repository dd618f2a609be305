"""
Mock adapter — scripted executor for tests.

Returns success for everything unless told otherwise. Responses are
scripted per operation name (``clone``, ``checkout`` ...) or per action
id; an optional effect callable lets a test simulate what the real
executor would leave on disk.
"""

from __future__ import annotations

from collections.abc import Callable

from modehub.adapters.base import Adapter, ExecutionContext
from modehub.core.models.action import Receipt

Effect = Callable[[ExecutionContext], None]


class MockAdapter(Adapter):
    """Universal executor double that records every call."""

    def __init__(
        self,
        adapter_name: str = "git",
        available: bool = True,
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._effects: dict[str, Effect] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def operations(self) -> list[str]:
        """Operation names in call order."""
        return [ctx.action.operation for ctx in self._call_log]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, key: str, receipt: Receipt) -> None:
        """Script the receipt for an operation name or an action id."""
        self._responses[key] = receipt

    def set_failure(self, key: str, error: str = "Mock failure") -> None:
        self._responses[key] = Receipt.failure(adapter=self._name, action_id=key, error=error)

    def set_benign(self, key: str, reason: str = "Already on 'master'") -> None:
        self._responses[key] = Receipt.skip(
            adapter=self._name, action_id=key, reason=reason, metadata={"benign": True}
        )

    def on(self, operation: str, effect: Effect) -> None:
        """Run ``effect`` whenever ``operation`` is executed successfully."""
        self._effects[operation] = effect

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    async def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)
        action = context.action

        receipt = self._responses.get(action.id) or self._responses.get(action.operation)
        if receipt is None:
            receipt = Receipt.success(
                adapter=self._name,
                action_id=action.id,
                output=self._default_output,
                metadata={"mock": True},
            )
        if receipt.succeeded and action.operation in self._effects:
            self._effects[action.operation](context)
        return receipt

    def reset(self) -> None:
        self._call_log.clear()
        self._responses.clear()
        self._effects.clear()
