"""
Top‑level package for the Volley Planner.

This file makes ``volley_planner`` a Python package so that modules
within ``app`` can be imported using fully qualified names like
``volley_planner.app.main``.

The package provides no public exports; all functionality lives in
submodules under ``app``.  The HTTP client and the client‑side event
store live next to this package as ``volley_planner_client`` and
``volley_planner_store``.
"""

__all__ = []
