"""User API.

A small FastAPI service exposing the user resource: CRUD over a pluggable
store, unique emails, partial updates and per-request telemetry.
"""

__version__ = "0.1.0"
