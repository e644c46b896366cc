# unixls/utils/varint.py - Unsigned LEB128 varints (multiformats / protobuf wire)

from ..core.errors import MalformedNodeError

MAX_VARINT_BYTES = 10


def encode_varint(value: int) -> bytes:
    """Encodes a non-negative integer as an unsigned varint."""
    if value < 0:
        raise ValueError(f"varint cannot encode negative value {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(buf: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Decodes an unsigned varint starting at `offset`.

    Returns:
        (value, new_offset)

    Raises:
        MalformedNodeError: If the buffer ends mid-varint or the varint is too long.
    """
    value = 0
    shift = 0
    for i in range(MAX_VARINT_BYTES):
        pos = offset + i
        if pos >= len(buf):
            raise MalformedNodeError("truncated varint")
        byte = buf[pos]
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, pos + 1
        shift += 7
    raise MalformedNodeError("varint too long")
