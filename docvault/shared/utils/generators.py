import re
import secrets
import uuid

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def generate_id() -> str:
    """Generate a random UUID4 identifier"""
    return str(uuid.uuid4())


def generate_download_token() -> str:
    """Generate an unguessable download token (256 bits from the OS CSPRNG)"""
    return secrets.token_urlsafe(32)


def sanitize_filename(filename: str, fallback: str = "untitled") -> str:
    """
    Reduce a user-supplied filename to a single safe path segment.

    Directory components are stripped and unsafe characters collapsed to "_".
    """
    name = filename.replace("\\", "/").rsplit("/", 1)[-1].strip()
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name[:255] or fallback
