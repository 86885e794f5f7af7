"""
Messaging vendor package.

Do not import factory or providers here.
"""

__all__ = [
    "interface",
    "mock_vendor",
    "factory",
]
