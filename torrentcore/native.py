"""File allocation helpers."""

from __future__ import annotations

import errno
import os
from typing import BinaryIO

_UNSUPPORTED = {errno.EOPNOTSUPP, errno.ENOSYS}


def is_sparse(file: BinaryIO) -> bool:
    """Whether the file occupies fewer blocks than its size implies."""
    st = os.fstat(file.fileno())
    return st.st_blocks * st.st_blksize < st.st_size


def fallocate(file: BinaryIO, length: int) -> bool:
    """Reserve disk space for length bytes.

    Returns True if space was really allocated, False if the file was only
    extended because the file system cannot preallocate.
    """
    fd = file.fileno()
    allocate = getattr(os, "posix_fallocate", None)
    if allocate is None:
        os.ftruncate(fd, length)
        return False
    while True:
        try:
            allocate(fd, 0, length)
            return True
        except InterruptedError:
            continue
        except OSError as exc:
            if exc.errno in _UNSUPPORTED:
                os.ftruncate(fd, length)
                return False
            if exc.errno == errno.ENOSPC:
                raise OSError(errno.ENOSPC, "Out of disk space!") from exc
            raise