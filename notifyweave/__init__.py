# NotifyWeave
# Post-build change-notification weaver

"""
Core contract: a notifier type gets exactly one notify target, and every
property selected by its markers calls that target once per reported
name after the value is stored.

Nothing is written back unless at least one setter was rewritten.
"""

__version__ = "0.1.0"
