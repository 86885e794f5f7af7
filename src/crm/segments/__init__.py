"""
Audience segments built from rule groups.
"""
