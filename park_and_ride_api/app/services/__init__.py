"""
Service layer.

Services contain the business logic of the API and talk to the
SQLite database through ``core.db``.  Endpoints stay thin: they parse
the request, call a service and translate ``ValueError`` and
``LookupError`` into HTTP errors.
"""
