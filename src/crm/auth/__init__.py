"""
Google sign-in and session tokens.
"""
