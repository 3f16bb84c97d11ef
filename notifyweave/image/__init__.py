# Image package for NotifyWeave
"""
Module image handling.

Reads and writes module images and resolves references that point
into other modules found on the configured search paths.
"""
