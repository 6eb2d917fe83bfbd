"""
Endpoint modules for API v1: events, teams and users.
"""
