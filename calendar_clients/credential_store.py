"""
Credential store for the Calendar OAuth client secret and token files.
"""

import json
import logging
import os
import tempfile
from typing import Optional, Tuple

from .errors import ConfigurationError
from .models import ClientSecrets, TokenRecord

logger = logging.getLogger(__name__)


class CredentialStore:
    def __init__(self, credentials_path: str, token_path: str):
        self.credentials_path = credentials_path
        self.token_path = token_path

    def load(self) -> Tuple[ClientSecrets, Optional[TokenRecord]]:
        """Read the client secret file and, if present, the saved token."""
        try:
            with open(self.credentials_path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"credentials.json not found at {self.credentials_path}. "
                "Download the OAuth web client from Google Cloud Console and place it there."
            ) from e
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Could not read {self.credentials_path}: {e}") from e

        secrets = ClientSecrets.from_dict(data)
        return secrets, self.load_token()

    def load_token(self) -> Optional[TokenRecord]:
        if not os.path.exists(self.token_path):
            logger.info("No existing token file at %s. You will need to authorize the app.", self.token_path)
            return None

        try:
            with open(self.token_path, 'r') as f:
                record = TokenRecord.from_dict(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable token file %s: %s", self.token_path, e)
            return None

        logger.info("Using previously saved tokens from %s", self.token_path)
        return record

    def save(self, record: TokenRecord) -> None:
        """Replace the token file with `record` in one atomic rename."""
        directory = os.path.dirname(os.path.abspath(self.token_path))
        fd, tmp_path = tempfile.mkstemp(prefix='.token-', suffix='.json', dir=directory)
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(record.to_dict(), f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.token_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info("Tokens stored to %s", self.token_path)
