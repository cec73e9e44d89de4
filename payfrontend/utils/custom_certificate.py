"""Load the internal certificate authority bundle.

Every regular file in the certificates directory is treated as PEM text and
the files are concatenated, in name order, into a single bundle.
"""

from __future__ import annotations

import logging
import ssl
from pathlib import Path

logger = logging.getLogger(__name__)


def get_cert_options(certs_path: str | None) -> str | None:
    """Return the concatenated PEM bundle, or None to keep default trust."""
    if not certs_path:
        logger.warning("CERTS_PATH is not set, using default trust store")
        return None

    directory = Path(certs_path).expanduser()
    if not directory.is_dir():
        logger.warning("Certificates directory %s does not exist", directory)
        return None

    certs = []
    for path in sorted(directory.iterdir()):
        if not path.is_file():
            continue
        certs.append(path.read_text(encoding="utf-8").strip())

    if not certs:
        logger.warning("No certificates found in %s", directory)
        return None

    return "\n".join(certs) + "\n"


def ssl_context_with_certs(cadata: str | None) -> ssl.SSLContext:
    """Return a default client context that additionally trusts `cadata`."""
    context = ssl.create_default_context()
    if cadata:
        context.load_verify_locations(cadata=cadata)
    return context
