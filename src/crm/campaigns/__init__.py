"""
Campaigns, delivery and communication logs.
"""
