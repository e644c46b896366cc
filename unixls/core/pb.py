# unixls/core/pb.py - dag-pb node and UnixFS Data codec
#
# Hand-decoded protobuf wire format for the two small messages the listing
# reads:
#
#   PBNode { repeated PBLink Links = 2; optional bytes Data = 1; }
#   PBLink { optional bytes Hash = 1; optional string Name = 2; optional uint64 Tsize = 3; }
#   Data   { required DataType Type = 1; optional bytes Data = 2; optional uint64 filesize = 3;
#            repeated uint64 blocksizes = 4; optional uint64 hashType = 5; optional uint64 fanout = 6; }

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from ..models.ls import UnixfsType
from ..utils.varint import decode_varint, encode_varint
from .cid import Cid
from .errors import MalformedNodeError

# --- Wire types ---
WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_BYTES = 2
WIRE_FIXED32 = 5


@dataclass(frozen=True)
class Link:
    """A named, sized reference from one dag node to another."""
    name: str
    cid: Cid
    size: int = 0


@dataclass
class FSNode:
    """Decoded UnixFS Data message."""
    type: UnixfsType
    data: bytes = b""
    filesize: Optional[int] = None
    blocksizes: List[int] = field(default_factory=list)
    hash_type: Optional[int] = None
    fanout: Optional[int] = None


# --- Low level ---

def _fields(buf: bytes) -> Iterator[Tuple[int, int, object]]:
    """Yields (field_number, wire_type, value) for each field in a message."""
    pos = 0
    while pos < len(buf):
        key, pos = decode_varint(buf, pos)
        number, wire = key >> 3, key & 0x7
        if number == 0:
            raise MalformedNodeError("protobuf field number 0")
        if wire == WIRE_VARINT:
            value, pos = decode_varint(buf, pos)
        elif wire == WIRE_BYTES:
            length, pos = decode_varint(buf, pos)
            if pos + length > len(buf):
                raise MalformedNodeError(f"field {number} overruns buffer")
            value = buf[pos:pos + length]
            pos += length
        elif wire == WIRE_FIXED64:
            value, pos = buf[pos:pos + 8], pos + 8
        elif wire == WIRE_FIXED32:
            value, pos = buf[pos:pos + 4], pos + 4
        else:
            raise MalformedNodeError(f"unsupported wire type {wire} for field {number}")
        if pos > len(buf):
            raise MalformedNodeError(f"field {number} overruns buffer")
        yield number, wire, value


def _key(number: int, wire: int) -> bytes:
    return encode_varint((number << 3) | wire)


def _bytes_field(number: int, value: bytes) -> bytes:
    return _key(number, WIRE_BYTES) + encode_varint(len(value)) + value


def _varint_field(number: int, value: int) -> bytes:
    return _key(number, WIRE_VARINT) + encode_varint(value)


def _expect(number: int, wire: int, expected: int) -> None:
    if wire != expected:
        raise MalformedNodeError(f"field {number} has wire type {wire}, expected {expected}")


# --- dag-pb ---

def decode_node(raw: bytes) -> Tuple[List[Link], bytes]:
    """
    Decodes a dag-pb block.

    Returns:
        (links, data) with links in stored order.

    Raises:
        MalformedNodeError: If the block is not valid dag-pb.
    """
    links: List[Link] = []
    data = b""
    for number, wire, value in _fields(raw):
        if number == 1:
            _expect(number, wire, WIRE_BYTES)
            data = value
        elif number == 2:
            _expect(number, wire, WIRE_BYTES)
            links.append(_decode_link(value))
    return links, data


def _decode_link(raw: bytes) -> Link:
    cid = None
    name = ""
    tsize = 0
    for number, wire, value in _fields(raw):
        if number == 1:
            _expect(number, wire, WIRE_BYTES)
            try:
                cid = Cid.from_bytes(value)
            except ValueError as e:
                raise MalformedNodeError(f"bad link hash: {e}") from None
        elif number == 2:
            _expect(number, wire, WIRE_BYTES)
            name = value.decode("utf-8", errors="replace")
        elif number == 3:
            _expect(number, wire, WIRE_VARINT)
            tsize = value
    if cid is None:
        raise MalformedNodeError("link without hash")
    return Link(name=name, cid=cid, size=tsize)


def encode_node(links: List[Link], data: bytes = b"") -> bytes:
    """Encodes a dag-pb block (links first, as the canonical form requires)."""
    out = bytearray()
    for link in links:
        body = _bytes_field(1, link.cid.to_bytes())
        body += _bytes_field(2, link.name.encode("utf-8"))
        body += _varint_field(3, link.size)
        out += _bytes_field(2, body)
    if data:
        out += _bytes_field(1, data)
    return bytes(out)


# --- UnixFS ---

def decode_unixfs(raw: bytes) -> FSNode:
    """
    Parses the UnixFS Data message carried in a dag-pb node's data.

    Raises:
        MalformedNodeError: On bad bytes, a missing Type, or an unknown Type value.
    """
    fs_type = None
    node = FSNode(type=UnixfsType.UNKNOWN)
    for number, wire, value in _fields(raw):
        if number == 1:
            _expect(number, wire, WIRE_VARINT)
            try:
                fs_type = UnixfsType(value)
            except ValueError:
                raise MalformedNodeError(f"unknown unixfs data type {value}") from None
        elif number == 2:
            _expect(number, wire, WIRE_BYTES)
            node.data = value
        elif number == 3:
            _expect(number, wire, WIRE_VARINT)
            node.filesize = value
        elif number == 4:
            _expect(number, wire, WIRE_VARINT)
            node.blocksizes.append(value)
        elif number == 5:
            _expect(number, wire, WIRE_VARINT)
            node.hash_type = value
        elif number == 6:
            _expect(number, wire, WIRE_VARINT)
            node.fanout = value
    if fs_type is None or fs_type == UnixfsType.UNKNOWN:
        raise MalformedNodeError("unixfs data without a type")
    node.type = fs_type
    return node


def encode_unixfs(fs_type: UnixfsType, data: bytes = b"", filesize: Optional[int] = None,
                  fanout: Optional[int] = None, hash_type: Optional[int] = None) -> bytes:
    out = _varint_field(1, int(fs_type))
    if data:
        out += _bytes_field(2, data)
    if filesize is not None:
        out += _varint_field(3, filesize)
    if hash_type is not None:
        out += _varint_field(5, hash_type)
    if fanout is not None:
        out += _varint_field(6, fanout)
    return out
