"""Google Cloud credentials shared by the speech and storage clients."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account

from readaloud.core.logging import debug, get_logger
from readaloud.services.errors import ConfigurationError

_LOG = get_logger("readaloud.credentials")


def load_credentials(credentials_path: Optional[str]) -> Optional[service_account.Credentials]:
    """
    Load service account credentials from a JSON key file.

    Returns None when no path is configured; the Google clients then fall
    back to application default credentials.

    Raises:
        ConfigurationError: If the configured file is missing or unreadable.
    """
    if not credentials_path:
        debug(_LOG, "credentials", source="application_default")
        return None

    resolved = Path(credentials_path).expanduser().resolve()
    if not resolved.exists():
        raise ConfigurationError(
            "Google Cloud credentials file not found",
            details={"credentials_path": str(resolved)},
        )
    try:
        credentials = service_account.Credentials.from_service_account_file(str(resolved))
    except (OSError, ValueError, GoogleAuthError) as e:
        raise ConfigurationError(
            "Google Cloud credentials file could not be loaded",
            details={"credentials_path": str(resolved)},
        ) from e

    debug(_LOG, "credentials", source="service_account", path=str(resolved))
    return credentials
