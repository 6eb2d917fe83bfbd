"""
Application package initializer.

This package contains the reference backend for team events and the
attendance engine it shares with the client side.  Domain logic lives
in ``services`` (attendance, recurrence, derived views), payload shapes
in ``schemas`` and the HTTP surface in ``api/v1/endpoints``.

The FastAPI application itself is built in ``main``; import it from
there (``volley_planner.app.main:app``) so that importing the services
does not require constructing the web application.
"""
