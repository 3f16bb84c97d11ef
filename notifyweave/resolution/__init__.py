# Resolution package for NotifyWeave
"""
Notify target and property name resolution.

Finds the callback each notifier type reports to, and the names each
property reports when it changes.
"""
