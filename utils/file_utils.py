from __future__ import annotations

import os
import tempfile
from pathlib import Path

__all__: list[str] = [
    "FilePermissionError",
    "FileUtils",
    "FileUtilsError",
    "InvalidFileTypeError",
]


class FileUtils:
    """Utility class for path resolution and small text files.

    Used for the log file and the voice preference file.
    """

    @staticmethod
    def resolve_path(path: str | Path, *, strict: bool = False) -> Path:
        """Convert a user-input path to an absolute path.

        Expands environment variables (e.g., $HOME, %APPDATA%) and ``~``, and resolves
        relative paths against the current working directory.

        Args:
            path (str | Path): The input path (e.g., "~/bot/$APP_ENV/voice.txt").
            strict (bool): Raise if the path does not exist.

        Returns:
            Path: The absolute path.
        """
        expanded: str = os.path.expandvars(str(path))
        user_expanded: Path = Path(expanded).expanduser()
        if user_expanded.is_absolute():
            return user_expanded.resolve(strict=strict)
        return (Path.cwd() / user_expanded).resolve(strict=strict)

    @staticmethod
    def read_lines(file_path: Path, encoding: str = "utf-8") -> list[str]:
        """Read a text file as a list of lines without line endings.

        Raises:
            FileNotFoundError: If the file does not exist.
            InvalidFileTypeError: If the path is a directory.
            OSError: If the file cannot be read.
        """
        if file_path.is_dir():
            msg = f"Invalid file type (directory): {file_path}"
            raise InvalidFileTypeError(msg)
        return file_path.read_text(encoding=encoding).splitlines()

    @staticmethod
    def write_text_atomic(file_path: Path, text: str, encoding: str = "utf-8") -> None:
        """Replace ``file_path`` with ``text`` so readers never see a partial file.

        Raises:
            FilePermissionError: If the directory or the file is not writable.
            OSError: On any other I/O failure.
        """
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp")
        tmp_path: Path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding=encoding, newline="\n") as fp:
                fp.write(text)
            tmp_path.replace(file_path)
        except PermissionError as err:
            tmp_path.unlink(missing_ok=True)
            msg = f"Insufficient permissions to write the file: {file_path}"
            raise FilePermissionError(msg) from err
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise


class FileUtilsError(Exception):
    """Custom exception for FileUtils-related errors."""


class InvalidFileTypeError(FileUtilsError):
    """Custom exception for invalid file type errors."""


class FilePermissionError(FileUtilsError):
    """Custom exception for file permission errors."""
