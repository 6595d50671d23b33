import logging
import os
import stat
import subprocess
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from wasabi.schemas.file import StoredFile
from wasabi.utils.filenames import (
    CANONICAL_EXTENSION,
    InvalidFileNameError,
    ensure_mp3_name,
    sanitize_name,
    split_extension,
)

logger = logging.getLogger(__name__)

ALLOWED_UPLOAD_EXTENSIONS = {".mp3", ".ogg", ".wav", ".m4a"}

# Conversion output is staged next to its destination so publishing it never
# crosses a filesystem boundary.
TEMP_PREFIX = ".tmp-convert-"
COPY_CHUNK_SIZE = 1024 * 1024
FILE_MODE = 0o644


class FfmpegEncoder:
    """Converts any audio container ffmpeg understands into an MP3."""

    def __init__(self, binary: str = "ffmpeg"):
        self.binary = binary

    def convert(self, src: Path, dst: Path) -> None:
        cmd = [
            self.binary,
            "-y",
            "-i", str(src),
            "-vn",
            "-codec:a", "libmp3lame",
            "-qscale:a", "2",
            str(dst),
        ]
        logger.debug("Running ffmpeg: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise ConversionError(f"Could not start {self.binary}: {e}") from e

        if result.returncode != 0:
            raise ConversionError(
                f"ffmpeg failed (exit {result.returncode}): {result.stderr.strip()}"
            )


class FileStore:
    """
    Flat directory of uploaded sounds.

    Every name coming from a caller goes through sanitize_name first. There is
    no in-process locking: O_EXCL opens and exclusive links are what keep two
    requests from clobbering the same name.
    """

    def __init__(
        self,
        root: str | Path,
        encoder: FfmpegEncoder | None = None,
        max_upload_bytes: int | None = None,
    ):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.encoder = encoder or FfmpegEncoder()
        self.max_upload_bytes = max_upload_bytes

    def upload(
        self,
        source: BinaryIO,
        declared_name: str | None,
        original_name: str | None,
    ) -> str:
        """
        Store an uploaded sound and return the name it was stored under.

        The format is taken from the original upload name (falling back to the
        declared name); the stored name always ends in .mp3.
        """
        file_name = (declared_name or "").strip() or (original_name or "")

        _, source_ext = split_extension(original_name or "")
        if not source_ext:
            _, source_ext = split_extension(file_name)
        if source_ext not in ALLOWED_UPLOAD_EXTENSIONS:
            raise UnsupportedFormatError("Unsupported format, use mp3, ogg, wav or m4a")

        final_name = ensure_mp3_name(sanitize_name(file_name))
        destination = self.root / final_name
        # Fail fast before spending time on a conversion; the exclusive
        # create/link below is what actually guarantees no overwrite.
        if destination.exists():
            raise FileNameConflictError(f"A file named {final_name} already exists")

        if source_ext == CANONICAL_EXTENSION:
            self._write_exclusive(source, destination)
        else:
            self._convert_and_publish(source, source_ext, destination)

        logger.info("Stored upload %s", final_name)
        return final_name

    def list_files(self) -> list[StoredFile]:
        files = []
        with os.scandir(self.root) as entries:
            for entry in entries:
                if entry.name.startswith(TEMP_PREFIX):
                    continue
                try:
                    if not entry.is_file():
                        continue
                    info = entry.stat()
                except OSError as e:
                    logger.warning(f"Failed to stat {entry.name}: {e}")
                    continue
                files.append(
                    StoredFile(
                        name=entry.name,
                        size=info.st_size,
                        modified=datetime.fromtimestamp(info.st_mtime, tz=timezone.utc),
                    )
                )
        return files

    def resolve(self, name: str) -> Path:
        """Path of an existing stored file."""
        path = self.root / sanitize_name(name)
        try:
            info = path.stat()
        except FileNotFoundError:
            raise StoredFileNotFoundError(f"File {path.name} not found") from None
        if stat.S_ISDIR(info.st_mode):
            raise InvalidFileNameError("Invalid file name")
        return path

    def delete(self, name: str) -> str:
        path = self.resolve(name)
        try:
            path.unlink()
        except FileNotFoundError:
            # Someone else removed it between the lookup and the unlink.
            raise StoredFileNotFoundError(f"File {path.name} not found") from None
        logger.info("Deleted %s", path.name)
        return path.name

    def rename(self, old_name: str, new_name: str) -> str:
        current = sanitize_name(old_name)
        target = sanitize_name(new_name)
        if current == target:
            return target

        old_path = self.resolve(current)
        new_path = self.root / target
        if new_path.exists():
            raise FileNameConflictError(f"A file named {target} already exists")

        # Another request may create the target between the check above and
        # the rename; that window is accepted.
        os.rename(old_path, new_path)
        logger.info("Renamed %s to %s", current, target)
        return target

    def _copy(self, source: BinaryIO, target: BinaryIO) -> int:
        written = 0
        while chunk := source.read(COPY_CHUNK_SIZE):
            written += len(chunk)
            if self.max_upload_bytes is not None and written > self.max_upload_bytes:
                raise UploadTooLargeError(
                    f"Upload exceeds {self.max_upload_bytes // (1024 * 1024)} MB"
                )
            target.write(chunk)
        return written

    def _write_exclusive(self, source: BinaryIO, destination: Path) -> None:
        try:
            fd = os.open(destination, os.O_WRONLY | os.O_CREAT | os.O_EXCL, FILE_MODE)
        except FileExistsError:
            raise FileNameConflictError(f"A file named {destination.name} already exists") from None

        try:
            target = os.fdopen(fd, "wb")
        except Exception:
            os.close(fd)
            raise

        try:
            with target:
                self._copy(source, target)
        except Exception:
            # The file was created by this call, so removing it cannot hurt anyone else.
            destination.unlink(missing_ok=True)
            raise

    def _convert_and_publish(self, source: BinaryIO, source_ext: str, destination: Path) -> None:
        spooled: Path | None = None
        converted: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(prefix="upload-", suffix=source_ext, delete=False) as tmp_in:
                spooled = Path(tmp_in.name)
                self._copy(source, tmp_in)

            fd, out_name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=CANONICAL_EXTENSION, dir=self.root)
            os.close(fd)
            converted = Path(out_name)

            self.encoder.convert(spooled, converted)
            os.chmod(converted, FILE_MODE)

            # link() refuses to replace an existing name, unlike rename().
            try:
                os.link(converted, destination)
            except FileExistsError:
                raise FileNameConflictError(
                    f"A file named {destination.name} already exists"
                ) from None
        finally:
            for path in (spooled, converted):
                if path is not None:
                    path.unlink(missing_ok=True)


class FileStoreError(Exception):
    """Base class for file store failures."""

    pass


class UnsupportedFormatError(FileStoreError):
    pass


class FileNameConflictError(FileStoreError):
    pass


class StoredFileNotFoundError(FileStoreError):
    pass


class UploadTooLargeError(FileStoreError):
    pass


class ConversionError(FileStoreError):
    """Raised when the external encoder fails."""

    pass
