"""
Weaving Orchestrator for NotifyWeave.

Ties the stages together into a single pass over one module image.

Pipeline stages:
    1. Resolver setup (search directories)
    2. Module load
    3. Scan / resolve / rewrite, type by type
    4. Conditional persist

The pass is single-threaded and deterministic. Any WeavingError aborts
before stage 4, leaving the image on disk untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..config import WeaverConfig
from ..image.codec import read_module, write_module
from ..image.resolver import MetadataResolver, ModuleResolver
from ..model import ModuleDef
from ..scanning.scanner import (
    WeavePlan,
    WeaveSession,
    plan_type_tree,
    process_type,
)

logger = logging.getLogger(__name__)


# =============================================================================
# WEAVE RESULT
# =============================================================================

@dataclass
class WeaveResult:
    """
    Outcome of one weaver run.

    Exposes:
    - Whether the image was rewritten
    - Every property that was woven (or would be, for a plan)
    - Scan statistics
    """
    module_path: Path
    module_name: str
    woven: list[WeavePlan] = field(default_factory=list)
    saved: bool = False
    types_scanned: int = 0
    notifier_types: int = 0

    @property
    def modified(self) -> bool:
        return len(self.woven) > 0

    @property
    def notification_count(self) -> int:
        return sum(len(plan.names) for plan in self.woven)


# =============================================================================
# PIPELINE EXECUTION
# =============================================================================

def create_session(module: ModuleDef, module_path: Path, config: WeaverConfig) -> WeaveSession:
    """Build the resolver stack for a run and register the module itself."""
    module_resolver = ModuleResolver(config.resolution_paths(module_path))
    module_resolver.register(module)
    return WeaveSession(metadata_resolver=MetadataResolver(module_resolver))


def _load(module_path: Path | str, config: Optional[WeaverConfig]) -> tuple[Path, WeaverConfig, ModuleDef]:
    module_path = Path(module_path)
    config = config or WeaverConfig()
    module = read_module(module_path, read_symbols=config.debug)
    return module_path, config, module


def run_weaver(
    module_path: Path | str,
    config: Optional[WeaverConfig] = None,
) -> WeaveResult:
    """
    Weave notifications into the module image at `module_path`.

    The image is rewritten in place only if at least one property was
    woven, in any type at any nesting depth.

    Raises:
        WeavingError: On any fatal declaration; nothing is written
    """
    module_path, config, module = _load(module_path, config)
    session = create_session(module, module_path, config)

    # ==========================================================================
    # SCAN / RESOLVE / REWRITE
    # ==========================================================================
    for type_def in module.types:
        if process_type(type_def, session):
            logger.debug(f"Altered type {type_def.full_name}")

    result = WeaveResult(
        module_path=module_path,
        module_name=module.name,
        woven=list(session.woven),
        types_scanned=session.types_scanned,
        notifier_types=session.notifier_types,
    )

    # ==========================================================================
    # PERSIST (only when something changed)
    # ==========================================================================
    if session.modified:
        write_module(module, module_path, write_symbols=config.debug)
        result.saved = True
        logger.info(
            f"Wove {result.notification_count} notification(s) into "
            f"{len(result.woven)} property(ies) of {module.name}"
        )
    else:
        logger.info(f"No properties to weave in {module.name}; image left unchanged")

    return result


def plan_weaver(
    module_path: Path | str,
    config: Optional[WeaverConfig] = None,
) -> WeaveResult:
    """
    Report what run_weaver would weave, without changing anything.

    Fatal declarations raise exactly as they would during a real run.
    """
    module_path, config, module = _load(module_path, config)
    session = create_session(module, module_path, config)

    plans: list[WeavePlan] = []
    for type_def in module.types:
        plans.extend(plan_type_tree(type_def, session))

    return WeaveResult(
        module_path=module_path,
        module_name=module.name,
        woven=plans,
        types_scanned=session.types_scanned,
        notifier_types=session.notifier_types,
    )
