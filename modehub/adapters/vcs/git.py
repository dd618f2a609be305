"""
Git adapter — the version-control executor.

Runs ``git`` as a subprocess without blocking the event loop and reports
the outcome as a Receipt:

    exit code != 0                      → failed
    checkout that found nothing to do   → skipped (benign)
    anything else                       → ok

Callers never look at git's human-readable output to decide success.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import time

from modehub.adapters.base import Adapter, ExecutionContext
from modehub.core.models.action import Receipt

logger = logging.getLogger(__name__)

VALID_OPERATIONS = {"clone", "pull", "checkout", "describe"}

# Informational lines git prints on a checkout that changed nothing
_BENIGN_CHECKOUT_PREFIXES = ("already on ", "head is now at ")


def is_benign_checkout(stderr: str) -> bool:
    first = stderr.strip().splitlines()[0].lower() if stderr.strip() else ""
    return first.startswith(_BENIGN_CHECKOUT_PREFIXES)


class GitAdapter(Adapter):
    """Git operations used by the fetch pipeline.

    Action fields:
        operation: One of 'clone', 'pull', 'checkout', 'describe'.
        args: Arguments following the git sub-command.
        work_tree: Directory to run in (required for pull/checkout).
    """

    def __init__(self, executable: str = "git") -> None:
        self._executable = executable

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return shutil.which(self._executable) is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        action = context.action
        if action.operation not in VALID_OPERATIONS:
            return False, (
                f"Unknown operation '{action.operation}'. "
                f"Valid: {', '.join(sorted(VALID_OPERATIONS))}"
            )
        if action.operation in ("pull", "checkout") and not action.work_tree:
            return False, f"Missing work tree for '{action.operation}'"
        if action.operation == "clone" and len(action.args) < 2:
            return False, "clone needs a repository and a destination"
        return True, ""

    def argv(self, context: ExecutionContext) -> list[str]:
        action = context.action
        return [self._executable, action.operation, *action.args]

    async def execute(self, context: ExecutionContext) -> Receipt:
        action = context.action
        valid, message = self.validate(context)
        if not valid:
            return Receipt.failure(adapter=self.name, action_id=action.id, error=message)

        argv = self.argv(context)
        logger.debug("$ %s (in %s)", " ".join(argv), context.working_dir or ".")
        start = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=context.working_dir,
                stdout=asyncio.subprocess.PIPE if context.buffered else None,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Cannot run {argv[0]}: {e}",
                metadata={"argv": argv},
            )

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=context.timeout
            )
        except TimeoutError:
            proc.kill()
            await proc.wait()
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"git {action.operation} timed out after {context.timeout}s",
                metadata={"argv": argv},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        out = (stdout or b"").decode("utf-8", errors="replace")
        err = (stderr or b"").decode("utf-8", errors="replace")

        if context.forward_errors and err.strip():
            for line in err.strip().splitlines():
                logger.info("  %s", line)

        meta = {"argv": argv}
        if proc.returncode != 0:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=err.strip() or f"git {action.operation} failed (exit {proc.returncode})",
                output=out,
                return_code=proc.returncode,
                duration_ms=elapsed_ms,
                metadata=meta,
            )

        if action.operation == "checkout" and is_benign_checkout(err):
            return Receipt.skip(
                adapter=self.name,
                action_id=action.id,
                reason=err.strip().splitlines()[0],
                return_code=0,
                duration_ms=elapsed_ms,
                metadata={**meta, "benign": True},
            )

        return Receipt.success(
            adapter=self.name,
            action_id=action.id,
            output=out,
            return_code=0,
            duration_ms=elapsed_ms,
            metadata=meta,
        )
