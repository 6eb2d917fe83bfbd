"""
Version 1 of the Volley Planner API.

The aggregated router lives in ``router``.
"""
