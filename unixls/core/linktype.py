# unixls/core/linktype.py - Works out what a directory entry points at

import logging

from ..models.ls import UnixfsType
from .cid import DAG_PB, RAW
from .context import Context
from .dag import DagService, ProtoNode
from .errors import BlockNotFoundError
from .pb import Link

logger = logging.getLogger(__name__)


def resolve_link_type(ctx: Context, dag: DagService, link: Link, resolve: bool) -> UnixfsType:
    """
    Determines the UnixFS type of a link's target with as little fetching as possible.

    Raw leaves are files and are never fetched. dag-pb targets are loaded
    through `dag`; callers that declined resolution pass an offline DAG service
    so only locally available blocks are read. Other codecs are UNKNOWN.

    Args:
        ctx: Cancellation context for the fetch.
        dag: DAG service to load the target from.
        link: The directory entry.
        resolve: Whether resolution was requested. When False a missing target
            is reported as UNKNOWN instead of failing the listing.

    Returns:
        The declared type, or UnixfsType.UNKNOWN.

    Raises:
        BlockNotFoundError: The target is missing and `resolve` is True.
        MalformedNodeError: The target's UnixFS data cannot be parsed.
    """
    if link.cid.codec == RAW:
        return UnixfsType.FILE
    if link.cid.codec != DAG_PB:
        return UnixfsType.UNKNOWN

    try:
        node = dag.get(ctx, link.cid)
    except BlockNotFoundError:
        if resolve:
            raise
        logger.debug(f"Type of '{link.name}' ({link.cid}) unknown: block not available locally")
        return UnixfsType.UNKNOWN

    if not isinstance(node, ProtoNode):
        return UnixfsType.UNKNOWN
    return node.fs_node().type
