"""
Run configuration for NotifyWeave.

No config files, no environment lookups. Everything a run needs is in
WeaverConfig, built by the CLI from its arguments.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


# Directory of the installed weaver; always searched for referenced modules.
APPLICATION_PATH = Path(__file__).resolve().parent


@dataclass(frozen=True)
class WeaverConfig:
    """
    debug:       read and rewrite the companion debug-symbol file
    search_dirs: extra directories searched for referenced modules,
                 after the application and input-module directories
    """
    debug: bool = False
    search_dirs: tuple[Path, ...] = field(default_factory=tuple)

    def resolution_paths(self, module_path: Path) -> list[Path]:
        """Ordered search directories for a run over `module_path`."""
        paths = [APPLICATION_PATH, module_path.resolve().parent]
        for directory in self.search_dirs:
            directory = Path(directory)
            if directory not in paths:
                paths.append(directory)
        return paths
