"""
Core domain logic - framework-agnostic.

Nothing in here performs I/O.
"""
