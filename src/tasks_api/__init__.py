"""
Tasks API package.

Single-user task manager exposed as a small FastAPI service. The application
instance lives in ``tasks_api.main`` (``app``), built by ``create_app``.
"""
