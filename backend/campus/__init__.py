"""Application package for the campus student-management backend.

This package exposes the model, repository and service modules used by
the FastAPI application in `campus.main`. Routers live in
`campus.routes`; small shared helpers live in `campus.utils`.
"""
