"""
CRM backend: customers, orders, segments and campaigns.
"""

__version__ = "0.1.0"
