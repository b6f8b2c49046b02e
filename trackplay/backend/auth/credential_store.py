"""Encrypted on-disk persistence for the Trakt token pair.

The access_token and refresh_token entries live in a single encrypted blob
(one Fernet token), so the pair is atomic: both values are always written and
read together, and a half-written pair cannot be observed.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from pydantic import ValidationError

from trackplay.backend.auth.models import TokenPair
from trackplay.backend.common.errors import StorageError
from trackplay.backend.common.logging import get_logger
from trackplay.config import settings

_BLOB_FILENAME = "credentials.enc"
_KEY_FILENAME = "credentials.key"
_KEY_ENV = "TRACKPLAY_CREDENTIALS_KEY"


class CredentialStore:
    """get/set/clear access to the persisted token pair."""

    def __init__(
        self,
        directory: Optional[Path] = None,
        *,
        key: Optional[bytes] = None,
    ) -> None:
        self._log = get_logger(__name__)
        self._dir = Path(directory or settings.get_tokens_dir())
        self._blob_path = self._dir / _BLOB_FILENAME
        self._key_path = self._dir / _KEY_FILENAME
        env_key = os.getenv(_KEY_ENV)
        self._key: Optional[bytes] = key or (env_key.encode("ascii") if env_key else None)

    @property
    def path(self) -> Path:
        return self._blob_path

    def get(self) -> Optional[TokenPair]:
        """Return the stored pair, or ``None`` when absent or unreadable."""

        if not self._blob_path.exists():
            return None
        try:
            fernet = self._fernet(create=False)
            if fernet is None:
                self._log.warning("Credential key missing; treating stored session as absent")
                return None
            raw = fernet.decrypt(self._blob_path.read_bytes())
            data = json.loads(raw.decode("utf-8"))
        except (OSError, InvalidToken, ValueError) as exc:
            self._log.warning("Failed to read stored credentials: %s", type(exc).__name__)
            return None

        if not isinstance(data, dict) or not data.get("access_token") or not data.get("refresh_token"):
            self._log.warning("Stored credentials incomplete; ignoring")
            return None
        try:
            return TokenPair.model_validate(
                {"access_token": data["access_token"], "refresh_token": data["refresh_token"]}
            )
        except ValidationError:
            self._log.warning("Stored credentials invalid; ignoring")
            return None

    def set(self, pair: TokenPair) -> None:
        """Persist both tokens in a single atomic replace."""

        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            fernet = self._fernet(create=True)
            blob = fernet.encrypt(json.dumps(pair.as_storage()).encode("utf-8"))
            fd, tmp_name = tempfile.mkstemp(prefix=".credentials-", dir=str(self._dir))
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(blob)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, self._blob_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, ValueError) as exc:
            raise StorageError(f"Failed to persist credentials: {exc}") from exc

    def clear(self) -> None:
        try:
            self._blob_path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to clear credentials: {exc}") from exc

    # ------------------------------------------------------------------
    def _fernet(self, *, create: bool) -> Optional[Fernet]:
        if self._key is None:
            if self._key_path.exists():
                self._key = self._key_path.read_bytes().strip()
            elif create:
                self._key = Fernet.generate_key()
                self._write_key(self._key)
            else:
                return None

        return Fernet(self._key)

    def _write_key(self, key: bytes) -> None:
        fd = os.open(str(self._key_path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as fh:
            fh.write(key)
