"""
Service layer abstraction.

The attendance, recurrence, schedule and statistics services are pure
and operate on schema objects; they are shared by the backend and the
client‑side store.  ``EventService``, ``TeamService`` and
``DeadlineService`` persist through ``core.db``.
"""
