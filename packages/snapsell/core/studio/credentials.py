"""API credential validation and persistence.

A key is checked locally for its prefix, then probed against the
chat-completions endpoint with an empty body. The service answers an
authenticated empty request with 400, so 400 counts as a valid key.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path

from snapsell.core.api.http.client import AsyncApiClient
from snapsell.core.api.http.errors import ApiError
from snapsell.core.studio.errors import ValidationError

logger = logging.getLogger(__name__)

KEY_PREFIXES = ("pk_", "sk_")

PROBE_PATH = "/chat/completions"


class KeyStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    UNAVAILABLE = "unavailable"


def validate_key_format(api_key: str) -> str:
    """Trim and check a key's format.

    Returns:
        The trimmed key

    Raises:
        ValidationError: Empty, or not a pk_/sk_ key
    """
    key = (api_key or "").strip()
    if not key:
        raise ValidationError("API key is empty")
    if not key.startswith(KEY_PREFIXES):
        raise ValidationError("Invalid key format. Keys must start with 'pk_' or 'sk_'.")
    return key


async def probe_api_key(http_client: AsyncApiClient, api_key: str) -> KeyStatus:
    """Ask the service whether ``api_key`` is accepted.

    Args:
        http_client: Client bound to the text service base URL (no auth)
        api_key: Key to probe

    Returns:
        VALID for 2xx or 400, INVALID for 401/403, UNAVAILABLE otherwise
        (including timeouts and network failures)
    """
    try:
        response = await http_client.post(
            PROBE_PATH,
            json_body={},
            headers={"Authorization": f"Bearer {api_key}"},
            raise_for_status=False,
        )
    except ApiError as e:
        logger.warning(f"Key probe failed: {e}")
        return KeyStatus.UNAVAILABLE

    if response.status_code in (401, 403):
        return KeyStatus.INVALID
    if response.is_success or response.status_code == 400:
        return KeyStatus.VALID
    logger.warning(f"Key probe returned unexpected status {response.status_code}")
    return KeyStatus.UNAVAILABLE


class CredentialStore:
    """Single API credential kept in a user-only file.

    Args:
        path: Credential file location
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> str | None:
        if not self.path.exists():
            return None
        key = self.path.read_text(encoding="utf-8").strip()
        return key or None

    def save(self, api_key: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(api_key)
        os.chmod(self.path, 0o600)
        logger.debug(f"Saved credential to {self.path}")

    def clear(self) -> bool:
        """Remove the stored credential. Returns False if there was none."""
        if not self.path.exists():
            return False
        self.path.unlink()
        return True


async def login(http_client: AsyncApiClient, store: CredentialStore, api_key: str) -> KeyStatus:
    """Validate, probe and, when valid, persist a key.

    Raises:
        ValidationError: Bad key format (nothing is sent)
    """
    key = validate_key_format(api_key)
    status = await probe_api_key(http_client, key)
    if status is KeyStatus.VALID:
        store.save(key)
    return status
