from typing import Final

CORRELATION_HEADER: Final[str] = "x-request-id"
