"""Secrets loading for MailBot: SOPS-encrypted or plain .env files.

File values are overlaid by process environment variables, so the API key
can be supplied either way.
"""

import logging
import os
import subprocess
from collections.abc import Iterable, Mapping
from io import StringIO
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def _decrypt_sops(path: Path) -> str:
    """Return the plaintext of a SOPS-encrypted file.

    Raises:
        subprocess.CalledProcessError: If SOPS decryption fails.
    """
    result = subprocess.run(
        ["sops", "--decrypt", str(path)],
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


def read_env_file(path: str | Path, *, encrypted: bool = False) -> dict[str, str | None]:
    """Read key-value pairs from a .env file, decrypting with SOPS if asked.

    A missing file yields an empty dict so that environment variables
    alone are enough to run.
    """
    path = Path(path)
    if not path.exists():
        logger.debug("Secrets file not found at %s", path)
        return {}
    if encrypted:
        return dict(dotenv_values(stream=StringIO(_decrypt_sops(path))))
    return dict(dotenv_values(path))


def overlay_environ(
    values: Mapping[str, str | None],
    keys: Iterable[str],
    environ: Mapping[str, str] = os.environ,
) -> dict[str, str | None]:
    """Return ``values`` with any of ``keys`` set in ``environ`` taking precedence."""
    merged = dict(values)
    for key in keys:
        if key in environ:
            merged[key] = environ[key]
    return merged
