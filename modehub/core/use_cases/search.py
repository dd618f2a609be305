"""
Search use case — list index modules matching a query.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from modehub.core.config.loader import Settings, load_settings
from modehub.core.errors import ModeError
from modehub.core.models.module import Module
from modehub.core.models.options import QueryOptions
from modehub.core.services.index import IndexScanner

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    """Modules matching a query, sorted by id."""

    query: str = ""
    modules: list[Module] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "query": self.query,
            "modules": [
                {
                    "id": m.id,
                    "version": m.info.version,
                    "description": m.info.description,
                    "categories": m.categories,
                    "depends": m.depends,
                    "repo": m.info.repo,
                    "url": m.info.url,
                }
                for m in self.modules
            ],
        }


def search_modules(
    query: str,
    options: QueryOptions | None = None,
    settings: Settings | None = None,
    config_path: Path | None = None,
) -> SearchResult:
    """Find modules in the index whose manifest path matches ``query``."""
    result = SearchResult(query=query)
    try:
        settings = settings or load_settings(config_path)
        scanner = IndexScanner(settings)
        modules = asyncio.run(scanner.find(query, options))
    except ModeError as e:
        result.error = str(e)
        return result

    result.modules = sorted(modules, key=lambda m: m.id)
    return result
