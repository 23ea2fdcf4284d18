"""HaaS portal: hardware loan tracking API.

The FastAPI application lives in :mod:`portal.main`; run it with
``uvicorn portal.main:app``.
"""

__version__ = "0.1.0"
