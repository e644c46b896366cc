# unixls/core/directory.py - Read-only view of UnixFS directories (flat and HAMT-sharded)

import logging
from typing import Iterator, List, Optional, Union

from ..models.ls import UnixfsType
from .context import Context
from .dag import DagService, Node, ProtoNode
from .errors import LinkNotFoundError, MalformedNodeError
from .pb import FSNode, Link

logger = logging.getLogger(__name__)


class BasicDirectory:
    """A flat directory: the node's own links are the entries, in stored order."""

    def __init__(self, dag: DagService, node: ProtoNode):
        self.dag = dag
        self.node = node

    def list_all(self, ctx: Context) -> List[Link]:
        ctx.check()
        return list(self.node.links)

    def iter_links(self, ctx: Context) -> Iterator[Link]:
        return iter_node_links(ctx, self.node)

    def find(self, ctx: Context, name: str) -> Link:
        for link in self.node.links:
            if link.name == name:
                return link
        raise LinkNotFoundError(name, self.node.cid)


class ShardedDirectory:
    """
    A HAMT-sharded directory.

    Every link name starts with a fixed-width hex bucket prefix. A link whose
    name is only the prefix points at a child shard; any other link is an entry
    named by the remainder. Child shards are fetched as the walk reaches them,
    so entries come out in bucket order rather than name order.
    """

    def __init__(self, dag: DagService, node: ProtoNode, fs: FSNode):
        fanout = fs.fanout
        if not fanout or fanout & (fanout - 1):
            raise MalformedNodeError(f"hamt fanout must be a power of two, got {fanout}")
        self.dag = dag
        self.node = node
        self.pad_length = len(f"{fanout - 1:X}")

    def list_all(self, ctx: Context) -> List[Link]:
        return list(self.iter_links(ctx))

    def iter_links(self, ctx: Context) -> Iterator[Link]:
        return self._walk(ctx, self.node)

    def _walk(self, ctx: Context, shard: ProtoNode) -> Iterator[Link]:
        for link in shard.links:
            ctx.check()
            if len(link.name) == self.pad_length:
                child = self.dag.get(ctx, link.cid)
                if not isinstance(child, ProtoNode) or child.fs_node().type != UnixfsType.HAMT_SHARD:
                    raise MalformedNodeError(f"hamt child {link.cid} is not a shard")
                logger.debug(f"Descending into child shard {link.cid}")
                yield from self._walk(ctx, child)
            elif len(link.name) < self.pad_length:
                raise MalformedNodeError(f"hamt link name {link.name!r} shorter than its bucket prefix")
            else:
                yield Link(name=link.name[self.pad_length:], cid=link.cid, size=link.size)

    def find(self, ctx: Context, name: str) -> Link:
        for link in self.iter_links(ctx):
            if link.name == name:
                return link
        raise LinkNotFoundError(name, self.node.cid)


Directory = Union[BasicDirectory, ShardedDirectory]


def open_directory(dag: DagService, node: Node) -> Optional[Directory]:
    """
    Interprets `node` as a UnixFS directory.

    Returns:
        The directory view, or None when the node is not a directory (raw
        leaves, files, symlinks). None is not an error.

    Raises:
        MalformedNodeError: The node is dag-pb but its data is not valid UnixFS.
    """
    if not isinstance(node, ProtoNode):
        return None
    fs = node.fs_node()
    if fs.type == UnixfsType.DIRECTORY:
        return BasicDirectory(dag, node)
    if fs.type == UnixfsType.HAMT_SHARD:
        return ShardedDirectory(dag, node, fs)
    return None


def iter_node_links(ctx: Context, node: Node) -> Iterator[Link]:
    """Lazily yields a node's own links, stopping once the context is cancelled."""
    for link in node.links:
        ctx.check()
        yield link
