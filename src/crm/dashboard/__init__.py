"""
Dashboard analytics.
"""
