"""
Core package.

Shared types, errors, serialization and logging setup.
"""
