"""
Cross-Module Resolution for NotifyWeave.

Base types may live in other modules. A ModuleResolver finds those
modules by name on an ordered list of search directories; a
MetadataResolver turns a TypeRef into the TypeDef it names.

Design principles:
- Search directories are explicit and ordered, first hit wins
- Each module is loaded at most once per resolver
- Unresolvable references are fatal, never guessed
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..errors import ResolutionError
from ..model import ModuleDef, TypeDef, TypeRef
from .codec import read_module

logger = logging.getLogger(__name__)


MODULE_IMAGE_SUFFIX = ".json"


class ModuleResolver:
    """Locates and caches modules by name."""

    def __init__(self, search_directories: Optional[list[Path | str]] = None):
        self._search_directories: list[Path] = []
        self._cache: dict[str, ModuleDef] = {}
        for directory in search_directories or []:
            self.add_search_directory(directory)

    @property
    def search_directories(self) -> list[Path]:
        return list(self._search_directories)

    def add_search_directory(self, directory: Path | str) -> None:
        directory = Path(directory)
        if directory not in self._search_directories:
            self._search_directories.append(directory)
            logger.debug(f"Added search directory: {directory}")

    def register(self, module: ModuleDef) -> None:
        """Make an already-loaded module resolvable by name."""
        self._cache[module.name] = module

    def find_image(self, module_name: str) -> Optional[Path]:
        for directory in self._search_directories:
            candidate = directory / f"{module_name}{MODULE_IMAGE_SUFFIX}"
            if candidate.is_file():
                return candidate
        return None

    def resolve(self, module_name: str) -> ModuleDef:
        """
        Return the named module, loading it from the search path on first use.

        Raises:
            ResolutionError: If no search directory holds the module image
        """
        cached = self._cache.get(module_name)
        if cached is not None:
            return cached

        path = self.find_image(module_name)
        if path is None:
            searched = ", ".join(str(d) for d in self._search_directories) or "<none>"
            raise ResolutionError(
                f"Cannot locate module '{module_name}' (searched: {searched})",
                module_name,
            )

        module = read_module(path)
        if module.name != module_name:
            raise ResolutionError(
                f"Image {path} declares module '{module.name}', expected '{module_name}'",
                str(path),
            )
        self._cache[module_name] = module
        logger.debug(f"Resolved module {module_name} from {path}")
        return module


class MetadataResolver:
    """Resolves type references to definitions through a ModuleResolver."""

    def __init__(self, module_resolver: ModuleResolver):
        self.module_resolver = module_resolver

    def resolve(self, type_ref: TypeRef) -> TypeDef:
        """
        Raises:
            ResolutionError: If the module or the type inside it is missing
        """
        module = self.module_resolver.resolve(type_ref.module)
        type_def = module.find_type(type_ref.full_name)
        if type_def is None:
            raise ResolutionError(
                f"Type {type_ref.full_name} not found in module '{type_ref.module}'",
                str(type_ref),
            )
        return type_def
