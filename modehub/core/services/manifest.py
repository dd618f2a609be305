"""
Manifest loading — YAML fragments describing one module each.

A manifest file holds one or more YAML documents; each document is a
mapping merged into the module's info in order. Manifests are data: the
only executable part is a ``configure`` hook *reference*, resolved by name
in ``modehub.core.services.configure``.

Example::

    description: Markdown parser and compiler
    categories: [text, parsers]
    github: someone/markdown-js
    version: 0.2
    configure: markdown:configure
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import yaml

from modehub.core.errors import ManifestError
from modehub.core.models.module import Module

logger = logging.getLogger(__name__)


def parse_fragments(text: str, source: Path | str = "(string)") -> list[dict[str, Any]]:
    """Parse manifest text into its mapping fragments.

    Raises:
        ManifestError: On invalid YAML or a non-mapping document.
    """
    try:
        documents = list(yaml.safe_load_all(text))
    except yaml.YAMLError as e:
        raise ManifestError(source, f"Invalid YAML: {e}") from e

    fragments: list[dict[str, Any]] = []
    for doc in documents:
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise ManifestError(
                source, f"Expected a YAML mapping, got {type(doc).__name__}"
            )
        fragments.append(doc)
    return fragments


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


async def load_from_index(module: Module, path: Path) -> Module:
    """Read the manifest at ``path`` and merge it into ``module``.

    Raises:
        ManifestError: The file is unreadable or invalid; the error names
            the file.
    """
    try:
        text = await asyncio.to_thread(_read, path)
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(path, f"Cannot read manifest: {e}") from e

    module.apply_index_content(text, path)
    logger.debug("Loaded manifest %s for %s", path, module.id)
    return module
