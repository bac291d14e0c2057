"""Tunnel credentials files."""

import os
import secrets
import uuid

from .exceptions import CredentialsFileExistsError
from .logging import get_logger
from .models import TUNNEL_SECRET_LENGTH, Credentials
from .utils import expand_path

logger = get_logger(__name__)

CREDENTIALS_FILE_MODE = 0o400


def generate_tunnel_secret() -> bytes:
    """Generate a tunnel secret using a secure random number generator."""
    return secrets.token_bytes(TUNNEL_SECRET_LENGTH)


def tunnel_file_path(tunnel_id: uuid.UUID, directory: str) -> str:
    """Default credentials path for a tunnel: ``<directory>/<tunnel-id>.json``."""
    return expand_path(os.path.join(directory, f"{tunnel_id}.json"))


def write_tunnel_credentials(path: str, credentials: Credentials) -> None:
    """Save credentials as JSON, only if nothing exists at ``path`` yet.

    The file is created exclusively, so a concurrent writer cannot slip in
    between the existence check and the write.

    Args:
        path: Destination file
        credentials: Credentials to write

    Raises:
        CredentialsFileExistsError: If ``path`` already exists
        OSError: For any other filesystem error
    """
    body = credentials.to_json().encode("utf-8")

    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, CREDENTIALS_FILE_MODE)
    except FileExistsError as e:
        raise CredentialsFileExistsError(path) from e

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(body)
    except Exception:
        try:
            os.unlink(path)
        except OSError:
            pass
        raise

    logger.debug("Credentials written", path=path, tunnel_id=str(credentials.tunnel_id))


def read_tunnel_credentials(path: str) -> Credentials:
    """Load credentials written by :func:`write_tunnel_credentials`.

    Raises:
        OSError: If the file cannot be read
        pydantic.ValidationError: If the content is not a credentials bundle
    """
    with open(expand_path(path), encoding="utf-8") as f:
        return Credentials.model_validate_json(f.read())
