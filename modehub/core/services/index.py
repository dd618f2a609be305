"""
Index scanner — resolve a query to the modules described by the index.

The index is a directory tree of manifests; a manifest's path relative to
the index root, minus its extension, is the module id (sub-directories
become namespace prefixes: ``web/markdown.yml`` → ``web/markdown``).

``IndexScanner.find`` walks the tree, tests each manifest path with a
Matcher and loads every match concurrently. The loads are coordinated by a
JobQueue's outstanding-work counter: the scan completes once the walk is
done and every load has reported back, and the first failing load closes
the scan with its error.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from collections.abc import Callable, Iterable
from pathlib import Path

from modehub.core.config.loader import Settings
from modehub.core.engine.queue import JobQueue
from modehub.core.errors import ConfigurationError, ResolutionError
from modehub.core.models.module import Module
from modehub.core.models.options import QueryOptions
from modehub.core.observability.logging_config import module_context
from modehub.core.services.manifest import load_from_index
from modehub.core.services.matching import Matcher, make_matcher, strip_ext

logger = logging.getLogger(__name__)

ModuleListener = Callable[[Module], None]


class IndexScanner:
    """Finds modules in the index directory of a Settings value."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def index_dir(self) -> Path:
        assert self.settings.index_dir is not None
        return self.settings.index_dir

    def __str__(self) -> str:
        return f"index {self.index_dir}"

    def manifest_paths(self) -> list[str]:
        """Index-relative POSIX paths of every manifest, in walk order."""
        root = self.index_dir
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for name in sorted(filenames):
                if not self.settings.is_manifest(name):
                    continue
                path = Path(dirpath) / name
                if not path.is_file():
                    continue
                found.append(path.relative_to(root).as_posix())
        return found

    async def find(
        self,
        query: str | re.Pattern[str] | Matcher,
        options: QueryOptions | None = None,
        on_module: ModuleListener | None = None,
    ) -> list[Module]:
        """Load every module whose manifest path matches ``query``.

        ``on_module`` is called for each module as soon as it is loaded.
        The returned list follows walk order. Zero matches is an empty
        list, not an error.

        Raises:
            ResolutionError: The query is empty or malformed.
            ConfigurationError: The index directory does not exist.
            ManifestError: A matching manifest failed to load.
        """
        matcher = query if isinstance(query, Matcher) else make_matcher(query, options)
        if not self.index_dir.is_dir():
            raise ConfigurationError(
                f"Index directory not found: {self.index_dir} (run 'modehub update')"
            )

        found: dict[int, Module] = {}
        loads: set[asyncio.Task[None]] = set()
        scan = JobQueue(self, name=f"find {matcher}")

        async def load(position: int, relpath: str) -> None:
            module = Module(id=strip_ext(relpath), settings=self.settings)
            try:
                with module_context(module.id):
                    await load_from_index(module, self.index_dir / relpath)
                if scan.closed:
                    return
                found[position] = module
                if on_module is not None:
                    on_module(module)
            except Exception as exc:
                scan.close(exc)
                return
            scan.decr()

        async def walk(scanner: IndexScanner) -> None:
            relpaths = await asyncio.to_thread(scanner.manifest_paths)
            for position, relpath in enumerate(relpaths):
                if scan.closed:
                    break
                if not matcher.test(relpath):
                    continue
                scan.incr()
                loads.add(asyncio.create_task(load(position, relpath)))

        scan.push(walk)
        try:
            await scan.run()
        finally:
            if loads:
                await asyncio.gather(*loads, return_exceptions=True)

        modules = [found[k] for k in sorted(found)]
        logger.debug("Query %s matched %d module(s)", matcher, len(modules))
        return modules


def name_query(
    names: Iterable[str],
    settings: Settings,
    case_sensitive: bool = False,
) -> tuple[re.Pattern[str], dict[str, dict[str, str]]]:
    """Build an exact-name query from module names given on the command line.

    Each name matches a manifest whose file name (or namespaced path)
    equals it. A trailing ``@ref`` pins that module to a revision; the
    returned mapping holds those per-module overrides keyed by the
    lower-cased short name.

    Raises:
        ResolutionError: No names, or a name that cannot form a pattern.
    """
    names = list(names)
    if not names:
        raise ResolutionError("missing module name")

    suffixes = "|".join(re.escape(s) for s in settings.manifest_suffixes)
    alternatives: list[str] = []
    per_module: dict[str, dict[str, str]] = {}
    for raw in names:
        name, _, ref = raw.partition("@")
        if not name:
            raise ResolutionError(f"malformed module name {raw!r}")
        key = name.rsplit("/", 1)[-1].lower()
        per_module[key] = {"repo_revision": ref} if ref else {}
        alternatives.append(rf"(?:^|/){re.escape(name)}(?:{suffixes})$")

    flags = 0 if case_sensitive else re.IGNORECASE
    try:
        pattern = re.compile("|".join(alternatives), flags)
    except re.error as e:
        raise ResolutionError(
            "malformed module name(s) " + ", ".join(repr(n) for n in names)
        ) from e
    return pattern, per_module
