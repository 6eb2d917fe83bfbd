"""
Pydantic schema definitions for API payloads.

Events, teams and users each define their own models.  All models use
camelCase aliases on the wire and snake_case attributes in Python.
"""
