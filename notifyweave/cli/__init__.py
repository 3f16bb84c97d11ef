# CLI package for NotifyWeave
"""
Command-line interface for running the weaver locally.

Commands:
    notifyweave weave    — Weave notifications into a module image
    notifyweave inspect  — Show what would be woven, without writing
"""
