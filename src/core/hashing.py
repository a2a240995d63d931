from __future__ import annotations

import hashlib
from typing import BinaryIO


def hash_stream(stream: BinaryIO, alg: str = "sha256", chunk_size: int = 65536) -> str:
    """
    Compute a hash over a readable binary stream.

    The stream is rewound to its starting offset afterwards so callers can
    hand the same object on to a decoder.
    """
    hasher = hashlib.new(alg)
    start = stream.tell() if stream.seekable() else None
    while chunk := stream.read(chunk_size):
        hasher.update(chunk)
    if start is not None:
        stream.seek(start)
    return hasher.hexdigest()
