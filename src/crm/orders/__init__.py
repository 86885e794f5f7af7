"""
Order management module.
"""
