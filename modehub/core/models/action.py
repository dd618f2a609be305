"""
Action and Receipt models — the executor contract.

An Action asks an adapter to run one version-control operation against a
working tree. The adapter answers with a Receipt and never raises: the
receipt's typed ``status`` is what callers branch on, never the text of
the executor's output.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A requested executor operation.

    ``operation`` names what to do (``clone``, ``pull``, ``checkout``,
    ``describe``); ``args`` are the operation-specific arguments
    appended to the command line.
    """

    id: str
    adapter: str = "git"
    operation: str
    args: list[str] = Field(default_factory=list)
    work_tree: str | None = None    # None = run in the process cwd
    for_module: str | None = None   # module id the action belongs to


class Receipt(BaseModel):
    """Result of an executor call.

    ``skipped`` marks a benign outcome: the executor had nothing to do
    (e.g. the working tree is already on the requested ref). It counts as
    success for every caller.
    """

    adapter: str
    action_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    return_code: int | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def succeeded(self) -> bool:
        """True for ``ok`` and for benign ``skipped`` outcomes."""
        return self.status != "failed"

    @property
    def benign(self) -> bool:
        return self.status == "skipped"

    @classmethod
    def success(
        cls,
        adapter: str,
        action_id: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(adapter=adapter, action_id=action_id, status="ok", output=output, **kwargs)

    @classmethod
    def failure(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **kwargs)

    @classmethod
    def skip(
        cls,
        adapter: str,
        action_id: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a benign no-op receipt."""
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **kwargs)
