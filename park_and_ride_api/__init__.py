"""
Top-level package for the Park and Ride API.

All functionality lives in submodules under ``app``; import the ASGI
application as ``park_and_ride_api.app.main:app``.
"""

__all__ = []
