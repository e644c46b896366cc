# unixls/core/dag.py - Blockstores, remote block exchange and the DAG service
#
# The listing only ever reads through DagService.get(). Blocks fetched from the
# remote exchange are cached in the local blockstore.

import logging
import os
import tempfile
import threading
from collections import OrderedDict
from pathlib import Path
from typing import List, Optional, Union

import httpx

from .cid import DAG_PB, RAW, Cid
from .context import Context
from .errors import BlockFetchError, BlockNotFoundError, ContextCancelledError, UnsupportedCodecError
from .pb import FSNode, Link, decode_node, decode_unixfs

logger = logging.getLogger(__name__)


# --- Nodes ---

class RawNode:
    """A raw leaf: opaque file bytes, never a directory."""

    def __init__(self, cid: Cid, data: bytes):
        self.cid = cid
        self.data = data
        self.links: List[Link] = []


class ProtoNode:
    """A dag-pb node: ordered links plus a data field (UnixFS metadata)."""

    def __init__(self, cid: Cid, links: List[Link], data: bytes):
        self.cid = cid
        self.links = links
        self.data = data

    def fs_node(self) -> FSNode:
        """Parses the node's data as UnixFS. Raises MalformedNodeError."""
        return decode_unixfs(self.data)


Node = Union[RawNode, ProtoNode]


def decode_block(cid: Cid, raw: bytes) -> Node:
    if cid.codec == RAW:
        return RawNode(cid, raw)
    if cid.codec == DAG_PB:
        links, data = decode_node(raw)
        return ProtoNode(cid, links, data)
    raise UnsupportedCodecError(cid)


# --- Blockstores ---

class MemoryBlockstore:
    """
    Blocks held in a dict. Used for tests and when no directory is configured.

    With `max_blocks` set, the least recently used blocks are evicted once the
    store grows past it.
    """

    kind = "memory"

    def __init__(self, max_blocks: Optional[int] = None):
        self.max_blocks = max_blocks
        self._blocks: "OrderedDict[Cid, bytes]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._blocks)

    def has(self, cid: Cid) -> bool:
        return cid in self._blocks

    def get(self, cid: Cid) -> bytes:
        with self._lock:
            try:
                data = self._blocks[cid]
            except KeyError:
                raise BlockNotFoundError(cid) from None
            self._blocks.move_to_end(cid)
            return data

    def put(self, cid: Cid, data: bytes) -> None:
        with self._lock:
            self._blocks[cid] = data
            self._blocks.move_to_end(cid)
            if self.max_blocks is None:
                return
            while len(self._blocks) > self.max_blocks:
                evicted, _ = self._blocks.popitem(last=False)
                logger.debug(f"Evicted block {evicted} from the in-memory blockstore")


class FlatFsBlockstore:
    """
    One file per block under `root`, named by the CID string.

    Blocks are written to a temporary file in `root` and renamed into place,
    so readers never see a partial block.
    """

    kind = "flatfs"

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, cid: Cid) -> Path:
        return self.root / str(cid)

    def has(self, cid: Cid) -> bool:
        return self._path(cid).is_file()

    def get(self, cid: Cid) -> bytes:
        try:
            return self._path(cid).read_bytes()
        except FileNotFoundError:
            raise BlockNotFoundError(cid) from None

    def put(self, cid: Cid, data: bytes) -> None:
        target = self._path(cid)
        if target.is_file():
            return
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, target)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise


# --- Remote exchange ---

class HttpBlockExchange:
    """
    Fetches single blocks from a trustless HTTP gateway.

    GET <base_url>/ipfs/<cid>?format=raw with Accept: application/vnd.ipld.raw.
    The returned bytes are verified against the CID before use.
    """

    def __init__(self, base_url: str, timeout: float = 30.0, client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.Client(follow_redirects=True)

    def fetch(self, ctx: Context, cid: Cid) -> bytes:
        ctx.check()
        timeout = self.timeout
        remaining = ctx.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)
        url = f"{self.base_url}/ipfs/{cid}"
        logger.debug(f"Fetching block {cid} from {url} (timeout {timeout:.1f}s)")
        try:
            response = self._client.get(
                url,
                params={"format": "raw"},
                headers={"Accept": "application/vnd.ipld.raw"},
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            if ctx.cancelled:
                raise ContextCancelledError(deadline_exceeded=ctx.deadline_exceeded) from e
            raise BlockFetchError(cid, f"timed out after {timeout:.1f}s") from e
        except httpx.HTTPError as e:
            raise BlockFetchError(cid, str(e)) from e

        if response.status_code in (404, 410):
            raise BlockNotFoundError(cid, f"block {cid} not found on gateway {self.base_url}")
        if response.status_code != 200:
            raise BlockFetchError(cid, f"gateway returned HTTP {response.status_code}")
        data = response.content
        if not cid.verify(data):
            raise BlockFetchError(cid, "block data does not match its hash")
        return data

    def close(self) -> None:
        self._client.close()


# --- DAG service ---

class DagService:
    """Read access to decoded nodes: local blockstore first, then the exchange if any."""

    def __init__(self, blockstore, exchange: Optional[HttpBlockExchange] = None):
        self.blockstore = blockstore
        self.exchange = exchange

    def offline(self) -> "DagService":
        """The same blockstore without remote fetching."""
        if self.exchange is None:
            return self
        return DagService(self.blockstore)

    def get_block(self, ctx: Context, cid: Cid) -> bytes:
        ctx.check()
        try:
            return self.blockstore.get(cid)
        except BlockNotFoundError:
            if self.exchange is None:
                raise
        data = self.exchange.fetch(ctx, cid)
        self.blockstore.put(cid, data)
        return data

    def get(self, ctx: Context, cid: Cid) -> Node:
        """
        Loads and decodes the node for `cid`.

        Raises:
            BlockNotFoundError: The block is unavailable (locally, and remotely if online).
            MalformedNodeError: The block does not decode as its codec.
            UnsupportedCodecError: The codec is neither raw nor dag-pb.
        """
        if cid.codec not in (RAW, DAG_PB):
            raise UnsupportedCodecError(cid)
        return decode_block(cid, self.get_block(ctx, cid))
