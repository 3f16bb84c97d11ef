# Scanning package for NotifyWeave
"""
Marker scanning modules.

Walks the type tree, finds notifier types and decides which
properties get woven.
"""
