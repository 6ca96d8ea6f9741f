"""
Scoped handling of uploaded input files.

The transport layer creates a temporary file for each upload and hands
its path to the engine; the engine owns deleting it.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from klassifikator.utils.logging import get_logger

log = get_logger(__name__)


@contextmanager
def scoped_upload(path: Path | str) -> Iterator[Path]:
    """
    Yield an uploaded file path and delete the file when the block exits.

    Deletion happens on success and on failure. A file that is already
    gone is not an error.

    Args:
        path: Temporary file handed over by the upload boundary.

    Yields:
        The same path as a Path object.
    """
    upload = Path(path)
    try:
        yield upload
    finally:
        try:
            upload.unlink(missing_ok=True)
            log.debug("Removed uploaded file", path=str(upload))
        except OSError as e:
            log.warning("Could not remove uploaded file", path=str(upload), error=str(e))
