"""Content fingerprints used for change detection."""

import hashlib
from pathlib import Path

CHUNK_SIZE = 64 * 1024


def compute_fingerprint(data: bytes) -> str:
    """
    Return the hex MD5 digest of data.

    MD5 matches the md5Checksum Drive reports in file metadata, so remote and
    on-disk fingerprints compare directly without a download.
    """
    return hashlib.md5(data).hexdigest()


def fingerprint_of_path(path: Path) -> str | None:
    """
    Fingerprint a file on disk.

    Returns None when the path does not exist. Any other read error
    propagates as OSError.
    """
    h = hashlib.md5()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                h.update(chunk)
    except FileNotFoundError:
        return None
    return h.hexdigest()
