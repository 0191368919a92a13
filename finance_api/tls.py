"""
tls.py - TLS material for the HTTPS listener
"""

import os
import ssl
import logging

from finance_api.config import ConfigError

logger = logging.getLogger(__name__)


def load_tls_context(cert_file: str, key_file: str) -> ssl.SSLContext:
    """
    Build the server-side SSL context from a PEM certificate chain and key.
    Certificates are only read here; picking up renewed files needs a restart.
    """
    for path in (cert_file, key_file):
        if not os.path.isfile(path):
            raise ConfigError(f"TLS file not found: {path}")

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    try:
        context.load_cert_chain(certfile=cert_file, keyfile=key_file)
    except (ssl.SSLError, OSError) as e:
        raise ConfigError(f"Cannot load TLS key/certificate: {e}") from e

    logger.info(f"TLS enabled - using {cert_file}")
    return context
