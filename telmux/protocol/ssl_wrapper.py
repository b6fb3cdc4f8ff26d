"""Server-side TLS contexts for secure Telnet listeners (stdlib ``ssl``)."""

import logging
import ssl
from typing import Optional

logger = logging.getLogger(__name__)

CIPHERS = "HIGH:!aNULL:!MD5"


class SSLError(Exception):
    """The TLS context could not be built."""


class SSLWrapper:
    """
    Builds, once, the server context for one certificate and hostname.

    :param certfile: PEM certificate chain.
    :param keyfile: Private key, None when it is bundled in ``certfile``.
    :param hostname: Server name the context answers for.
    :param cafile: CA bundle; when set, client certificates are requested.
    """

    def __init__(
        self,
        certfile: str,
        keyfile: Optional[str] = None,
        hostname: str = "localhost",
        cafile: Optional[str] = None,
    ):
        self.certfile = certfile
        self.keyfile = keyfile
        self.hostname = hostname
        self.cafile = cafile
        self.context: Optional[ssl.SSLContext] = None

    def create_context(self) -> ssl.SSLContext:
        """
        Load the certificate into a fresh PROTOCOL_TLS_SERVER context.

        TLS 1.2 is the floor, ciphers are restricted to ``CIPHERS`` and the
        context is bound to ``hostname`` through SNI.

        :raises SSLError: The certificate or key could not be loaded.
        """
        try:
            ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
            ctx.load_cert_chain(certfile=self.certfile, keyfile=self.keyfile)
            if self.cafile:
                ctx.load_verify_locations(cafile=self.cafile)
                ctx.verify_mode = ssl.CERT_OPTIONAL
        except (ssl.SSLError, OSError) as e:
            logger.error(f"[TLS] Cannot load certificate {self.certfile}: {e}")
            raise SSLError(f"SSL context creation failed: {e}") from e

        ctx.minimum_version = ssl.TLSVersion.TLSv1_2
        try:
            ctx.set_ciphers(CIPHERS)
        except ssl.SSLError as e:  # pragma: no cover - depends on OpenSSL build
            logger.debug(f"[TLS] Keeping default ciphers: {e}")
        bind_to_hostname(ctx, self.hostname)

        self.context = ctx
        logger.debug(f"[TLS] Server context ready for {self.hostname}")
        return ctx

    def get_context(self) -> ssl.SSLContext:
        if self.context is None:
            return self.create_context()
        return self.context


def bind_to_hostname(context: ssl.SSLContext, hostname: str) -> None:
    """Install an SNI callback that only accepts `hostname` (or no SNI at all)."""
    expected = hostname.lower()

    def _sni_callback(
        sslobj: ssl.SSLObject, server_name: Optional[str], ctx: ssl.SSLContext
    ) -> Optional[int]:
        if server_name is None or server_name.lower() == expected:
            return None
        logger.warning(
            f"[TLS] Rejecting handshake for '{server_name}', bound to '{hostname}'"
        )
        return ssl.ALERT_DESCRIPTION_UNRECOGNIZED_NAME

    context.sni_callback = _sni_callback
