"""Server-rendered payment pages.

The ASGI entrypoint lives in `payfrontend.app`.
"""
