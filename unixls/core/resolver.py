# unixls/core/resolver.py - Turns "/ipfs/<cid>/a/b" style references into DAG nodes

import logging
from typing import List, Tuple

from .cid import Cid
from .context import Context
from .dag import DagService, Node
from .directory import open_directory
from .errors import InvalidPathError, LinkNotFoundError

logger = logging.getLogger(__name__)

IPFS_NAMESPACE = "ipfs"


def parse_path(text: str) -> Tuple[Cid, List[str]]:
    """
    Splits a reference into its root CID and the path segments below it.

    Accepted forms: "/ipfs/<cid>[/seg...]" and "<cid>[/seg...]".

    Raises:
        InvalidPathError: If the reference is empty, uses another namespace,
            or its root is not a CID.
    """
    stripped = text.strip()
    if not stripped:
        raise InvalidPathError(text, "empty path")

    if stripped.startswith("/"):
        parts = stripped.strip("/").split("/")
        if parts[0] != IPFS_NAMESPACE:
            raise InvalidPathError(text, f"unsupported namespace {parts[0]!r}")
        parts = parts[1:]
        if not parts or not parts[0]:
            raise InvalidPathError(text, "missing root cid")
    else:
        parts = stripped.split("/")

    try:
        root = Cid.parse(parts[0])
    except ValueError as e:
        raise InvalidPathError(text, str(e)) from None
    return root, [segment for segment in parts[1:] if segment]


class PathResolver:
    """Walks named links from a root CID down to the addressed node."""

    def __init__(self, dag: DagService):
        self.dag = dag

    def resolve(self, ctx: Context, path: str) -> Node:
        root, segments = parse_path(path)
        node = self.dag.get(ctx, root)
        for segment in segments:
            directory = open_directory(self.dag, node)
            if directory is not None:
                link = directory.find(ctx, segment)
            else:
                link = next((l for l in node.links if l.name == segment), None)
                if link is None:
                    raise LinkNotFoundError(segment, node.cid)
            node = self.dag.get(ctx, link.cid)
        logger.debug(f"Resolved '{path}' to {node.cid}")
        return node
