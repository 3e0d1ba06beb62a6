"""
b2store - upload, delete and link binary objects in Backblaze B2.

This package contains:
- core: Object naming, session values and error types
- infrastructure: The B2 client and its protocol components
- config: Settings loaded from the environment
- cli: Command-line entry point
"""

__version__ = "0.1.0"
