"""
Customer management module.

Keep this import-light: models are loaded by the modules that need them.
"""

__all__: list[str] = []
