"""FastAPI HTTP layer.

Middleware, error handling, settings parsing, template and session helpers.
"""
