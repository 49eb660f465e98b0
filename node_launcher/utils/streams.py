import asyncio
from typing import BinaryIO, Optional

CHUNK_SIZE = 4096


async def forward_stream(
    reader: asyncio.StreamReader,
    sink: BinaryIO,
    captured: Optional[bytearray] = None,
    chunk_size: int = CHUNK_SIZE,
) -> int:
    """
    Copy a child process stream into a sink until end of stream.

    Each chunk is written and flushed as soon as it is read, so output is never
    held back for longer than it takes the child to produce it.

    Args:
        reader (asyncio.StreamReader): The child's stdout or stderr pipe.
        sink (BinaryIO): Binary destination, e.g. ``sys.stdout.buffer``.
        captured (Optional[bytearray]): When given, every chunk is also
                                        appended here.
        chunk_size (int): Maximum bytes read per iteration.

    Returns:
        int: Total number of bytes forwarded.
    """
    total = 0
    while chunk := await reader.read(chunk_size):
        sink.write(chunk)
        sink.flush()
        if captured is not None:
            captured.extend(chunk)
        total += len(chunk)
    return total
