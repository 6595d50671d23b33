import os

CANONICAL_EXTENSION = ".mp3"

_FORBIDDEN_FRAGMENTS = ("..", "/", "\\", "\x00")


class InvalidFileNameError(ValueError):
    """Raised when a user supplied file name is empty or could escape the upload directory."""

    pass


def sanitize_name(name: str | None) -> str:
    """
    Validate a user supplied file name and return it as a bare base name.

    Anything containing a traversal segment or a path separator is rejected
    outright instead of being stripped, so "../../etc/passwd" never maps onto
    "passwd".
    """
    cleaned = (name or "").strip()
    if not cleaned or cleaned == ".":
        raise InvalidFileNameError("File name is required")
    if any(fragment in cleaned for fragment in _FORBIDDEN_FRAGMENTS):
        raise InvalidFileNameError("Invalid file name")
    return os.path.basename(cleaned)


def split_extension(name: str) -> tuple[str, str]:
    stem, ext = os.path.splitext(name)
    return stem, ext.lower()


def ensure_mp3_name(name: str) -> str:
    stem, _ = split_extension(name)
    if not stem:
        stem = "audio"
    return f"{stem}{CANONICAL_EXTENSION}"


def effect_name(name: str) -> str:
    """Name a sound is played under: the file name without its extension."""
    stem, _ = split_extension(name)
    return stem or name
