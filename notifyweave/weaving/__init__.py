# Weaving package for NotifyWeave
"""
Instruction rewriting modules.

Mutates setter bodies in place to invoke the notify target.
"""
