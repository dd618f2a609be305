"""
Domain models — pydantic types for the module manager.

    from modehub.core.models import Module, ModuleInfo, ModuleConfig, Action, Receipt
"""

from modehub.core.models.action import Action, Receipt
from modehub.core.models.module import (
    Module,
    ModuleConfig,
    ModuleInfo,
    make_install_id,
    resolve_config,
)
from modehub.core.models.options import InstallOptions, QueryOptions

__all__ = [
    "Action",
    "InstallOptions",
    "Module",
    "ModuleConfig",
    "ModuleInfo",
    "QueryOptions",
    "Receipt",
    "make_install_id",
    "resolve_config",
]
