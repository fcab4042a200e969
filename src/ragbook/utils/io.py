from pathlib import Path

from domain_models.constants import MAX_FILE_SIZE_BYTES


def check_file(filepath: str | Path, max_size_bytes: int = MAX_FILE_SIZE_BYTES) -> Path:
    """
    Ensure a path names an existing regular file within the size limit.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the path is not a regular file or exceeds the size limit.
    """
    path = Path(filepath)

    if not path.exists():
        msg = f"File not found: {filepath}"
        raise FileNotFoundError(msg)

    if not path.is_file():
        msg = f"Not a file: {filepath}"
        raise ValueError(msg)

    size = path.stat().st_size
    if size > max_size_bytes:
        msg = f"File too large: {size} bytes. Limit is {max_size_bytes / (1024 * 1024):.2f}MB."
        raise ValueError(msg)

    return path


def read_file(filepath: str | Path, max_size_bytes: int = MAX_FILE_SIZE_BYTES) -> str:
    """
    Read content from a text file (UTF-8).

    Args:
        filepath: Path to the file.
        max_size_bytes: Refuse files larger than this.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the path is not a file, is too large, or is not valid UTF-8.
    """
    path = check_file(filepath, max_size_bytes)
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        msg = f"File encoding error: {e}. Please ensure the file is valid UTF-8."
        raise ValueError(msg) from e
