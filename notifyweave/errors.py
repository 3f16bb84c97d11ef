"""
Fatal weaving conditions for NotifyWeave.

Every condition that aborts a run is a WeavingError tagged with a rule.
Nothing is persisted once one of these is raised; the original module
image stays exactly as it was on disk.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class WeaveRule(Enum):
    """
    Fatal rules.

    W1: Notifier type has no notify target anywhere in its inheritance chain
    W2: Notify target does not take exactly one string parameter
    W3: Property needing notification has an abstract/external setter
    W4: Setter body has no instructions to weave around
    W5: Base type or its module cannot be resolved
    W6: Module image is malformed
    """
    W1_MISSING_TARGET = "missing_target"
    W2_INVALID_TARGET_SIGNATURE = "invalid_target_signature"
    W3_BODYLESS_SETTER = "bodyless_setter"
    W4_EMPTY_SETTER_BODY = "empty_setter_body"
    W5_UNRESOLVED_REFERENCE = "unresolved_reference"
    W6_INVALID_MODULE_IMAGE = "invalid_module_image"


class WeavingError(Exception):
    """Raised when a declaration makes weaving impossible."""

    def __init__(self, rule: WeaveRule, reason: str, location: Optional[str] = None):
        self.rule = rule
        self.reason = reason
        self.location = location
        super().__init__(f"[{rule.value}] {reason}")


class ResolutionError(WeavingError):
    """Raised when a cross-module reference cannot be resolved."""

    def __init__(self, reason: str, location: Optional[str] = None):
        super().__init__(WeaveRule.W5_UNRESOLVED_REFERENCE, reason, location)


class ImageFormatError(WeavingError):
    """Raised when a module image cannot be decoded."""

    def __init__(self, reason: str, location: Optional[str] = None):
        super().__init__(WeaveRule.W6_INVALID_MODULE_IMAGE, reason, location)
