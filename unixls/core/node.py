# unixls/core/node.py - Builds the blockstore / DAG service handle from configuration

import os
import logging
from typing import Optional

from dotenv import load_dotenv

from .dag import DagService, FlatFsBlockstore, HttpBlockExchange, MemoryBlockstore
from .resolver import PathResolver

logger = logging.getLogger(__name__)

# --- Configuration ---
load_dotenv()
BLOCKSTORE_DIR = os.getenv("UNIXLS_BLOCKSTORE_DIR")
GATEWAY_URL = os.getenv("UNIXLS_GATEWAY_URL")
FETCH_TIMEOUT = float(os.getenv("UNIXLS_FETCH_TIMEOUT", 30))
# Deadline for one listing served over HTTP; 0 disables it
REQUEST_TIMEOUT = float(os.getenv("UNIXLS_REQUEST_TIMEOUT", 60))
# Blocks kept by the in-memory blockstore before the least recently used are evicted
MEMORY_MAX_BLOCKS = int(os.getenv("UNIXLS_MEMORY_MAX_BLOCKS", 4096))
LOG_LEVEL = os.getenv("UNIXLS_LOG_LEVEL", "INFO").upper()


class UnixfsNode:
    """
    Everything a listing reads from: the blockstore, the online DAG service
    and a path resolver over it.
    """

    def __init__(self, blockstore, exchange: Optional[HttpBlockExchange] = None):
        self.blockstore = blockstore
        self.exchange = exchange
        self.dag = DagService(blockstore, exchange)
        self.resolver = PathResolver(self.dag)

    @property
    def gateway_url(self) -> Optional[str]:
        return self.exchange.base_url if self.exchange else None

    def close(self) -> None:
        if self.exchange:
            self.exchange.close()


def build_node(
    blockstore_dir: Optional[str] = BLOCKSTORE_DIR,
    gateway_url: Optional[str] = GATEWAY_URL,
    fetch_timeout: float = FETCH_TIMEOUT,
    memory_max_blocks: int = MEMORY_MAX_BLOCKS,
) -> UnixfsNode:
    """Creates the node described by the UNIXLS_* settings (or the given overrides)."""
    if blockstore_dir:
        blockstore = FlatFsBlockstore(blockstore_dir)
        logger.info(f"Using flat-file blockstore at '{blockstore_dir}'")
    else:
        blockstore = MemoryBlockstore(max_blocks=memory_max_blocks)
        logger.info(f"No UNIXLS_BLOCKSTORE_DIR set, using an in-memory blockstore (up to {memory_max_blocks} blocks)")

    exchange = None
    if gateway_url:
        exchange = HttpBlockExchange(gateway_url, timeout=fetch_timeout)
        logger.info(f"Remote blocks will be fetched from gateway '{gateway_url}' (timeout {fetch_timeout}s)")
    else:
        logger.info("No UNIXLS_GATEWAY_URL set, node is offline")
    return UnixfsNode(blockstore, exchange)
