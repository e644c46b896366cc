# unixls/core/cid.py - Content identifiers (CIDv0 and CIDv1)
#
# Only what the listing needs: the codec kind of a link target, a stable string
# form, and block hash verification for remotely fetched blocks.

import base64
import hashlib

from ..utils.base58 import b58decode, b58encode
from ..utils.varint import decode_varint, encode_varint
from .errors import MalformedNodeError

# --- Codecs (multicodec table) ---
RAW = 0x55
DAG_PB = 0x70
DAG_CBOR = 0x71

# --- Multihash ---
IDENTITY = 0x00
SHA2_256 = 0x12
SHA2_256_LEN = 32


class Cid:
    """A content identifier: version, codec and multihash."""

    __slots__ = ("version", "codec", "multihash")

    def __init__(self, version: int, codec: int, multihash: bytes):
        if version == 0 and codec != DAG_PB:
            raise ValueError("CIDv0 is always dag-pb")
        self.version = version
        self.codec = codec
        self.multihash = bytes(multihash)

    # --- Constructors ---

    @classmethod
    def for_block(cls, codec: int, data: bytes, version: int = 1) -> "Cid":
        """Computes the sha2-256 CID of a block."""
        digest = hashlib.sha256(data).digest()
        return cls(version, codec, bytes([SHA2_256, SHA2_256_LEN]) + digest)

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Cid":
        """Decodes the binary form found in dag-pb link hashes."""
        if len(raw) == 34 and raw[0] == SHA2_256 and raw[1] == SHA2_256_LEN:
            return cls(0, DAG_PB, raw)
        try:
            version, pos = decode_varint(raw)
            codec, pos = decode_varint(raw, pos)
        except MalformedNodeError as e:
            raise ValueError(f"bad cid bytes: {e}") from None
        if version != 1:
            raise ValueError(f"unsupported cid version {version}")
        multihash = raw[pos:]
        _check_multihash(multihash)
        return cls(1, codec, multihash)

    @classmethod
    def parse(cls, text: str) -> "Cid":
        """
        Parses the string form of a CID.

        Accepts base58btc CIDv0 ("Qm...") and base32 CIDv1 ("b...").

        Raises:
            ValueError: If the text is not a CID this module understands.
        """
        if len(text) == 46 and text.startswith("Qm"):
            multihash = b58decode(text)
            _check_multihash(multihash)
            return cls(0, DAG_PB, multihash)
        if text.startswith("b") and len(text) > 1:
            body = text[1:].upper()
            body += "=" * (-len(body) % 8)
            try:
                raw = base64.b32decode(body)
            except ValueError as e:
                raise ValueError(f"bad base32 in cid {text!r}: {e}") from None
            return cls.from_bytes(raw)
        raise ValueError(f"unrecognized cid encoding {text!r}")

    # --- Accessors ---

    def to_bytes(self) -> bytes:
        if self.version == 0:
            return self.multihash
        return encode_varint(1) + encode_varint(self.codec) + self.multihash

    def verify(self, data: bytes) -> bool:
        """Checks that `data` hashes to this CID's multihash."""
        code, pos = decode_varint(self.multihash)
        _, pos = decode_varint(self.multihash, pos)
        digest = self.multihash[pos:]
        if code == SHA2_256:
            return hashlib.sha256(data).digest() == digest
        if code == IDENTITY:
            return data == digest
        # Unknown hash functions cannot be checked here
        return True

    def __str__(self) -> str:
        if self.version == 0:
            return b58encode(self.multihash)
        return "b" + base64.b32encode(self.to_bytes()).decode("ascii").lower().rstrip("=")

    def __repr__(self) -> str:
        return f"Cid({self})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Cid):
            return NotImplemented
        return (self.version, self.codec, self.multihash) == (other.version, other.codec, other.multihash)

    def __hash__(self) -> int:
        return hash((self.version, self.codec, self.multihash))


def _check_multihash(multihash: bytes) -> None:
    try:
        _, pos = decode_varint(multihash)
        length, pos = decode_varint(multihash, pos)
    except MalformedNodeError as e:
        raise ValueError(f"bad multihash: {e}") from None
    if len(multihash) - pos != length:
        raise ValueError(f"multihash digest length mismatch: declared {length}, got {len(multihash) - pos}")
