"""CLI logging setup: simple %(message)s format for standalone commands."""

import logging
import sys

from dropdock.redact import SecretRedactingFilter


def setup_cli_logging(verbose=False):
    """Configure root logger with plain message format for CLI commands.

    Produces output identical to print(). With *verbose*, DEBUG records
    (resolved config echo, polling progress) are shown too. Secrets are
    redacted at the handler.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(SecretRedactingFilter())
    root.addHandler(handler)
    # httpx logs every request URL, credentials included, at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
