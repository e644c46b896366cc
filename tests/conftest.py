# tests/conftest.py - Shared fixtures: an in-memory node and a DAG builder

import pytest

from unixls.core.cid import DAG_PB, RAW, Cid
from unixls.core.dag import DagService, MemoryBlockstore
from unixls.core.node import UnixfsNode
from unixls.core.pb import Link, encode_node, encode_unixfs
from unixls.core.resolver import PathResolver
from unixls.models.ls import UnixfsType


class CountingDagService(DagService):
    """DagService that records every CID it was asked for."""

    def __init__(self, blockstore, exchange=None):
        super().__init__(blockstore, exchange)
        self.fetched = []

    def offline(self):
        if self.exchange is None:
            return self
        twin = CountingDagService(self.blockstore)
        twin.fetched = self.fetched
        return twin

    def get(self, ctx, cid):
        self.fetched.append(cid)
        return super().get(ctx, cid)


class DagBuilder:
    """Writes small UnixFS graphs into a blockstore."""

    def __init__(self, blockstore):
        self.blockstore = blockstore

    def _put(self, codec, block, version=1):
        cid = Cid.for_block(codec, block, version=version)
        self.blockstore.put(cid, block)
        return cid

    def raw(self, content: bytes) -> Cid:
        return self._put(RAW, content)

    def pb(self, fs_type, links=(), data=b"", version=1, **fields) -> Cid:
        block = encode_node(list(links), encode_unixfs(fs_type, data=data, **fields))
        return self._put(DAG_PB, block, version=version)

    def file(self, content: bytes, version=1) -> Cid:
        return self.pb(UnixfsType.FILE, data=content, filesize=len(content), version=version)

    def symlink(self, target: str) -> Cid:
        return self.pb(UnixfsType.SYMLINK, data=target.encode())

    def directory(self, entries, version=1) -> Cid:
        """entries: iterable of (name, cid, size)."""
        links = [Link(name=name, cid=cid, size=size) for name, cid, size in entries]
        return self.pb(UnixfsType.DIRECTORY, links=links, version=version)

    def shard(self, buckets, fanout=256) -> Cid:
        """
        buckets: list of (prefix, content) where content is either a list of
        (name, cid, size) entries or a Cid of a child shard.
        """
        links = []
        for prefix, content in buckets:
            if isinstance(content, Cid):
                links.append(Link(name=prefix, cid=content, size=0))
            else:
                links.extend(Link(name=prefix + name, cid=cid, size=size) for name, cid, size in content)
        return self.pb(UnixfsType.HAMT_SHARD, links=links, fanout=fanout, hash_type=0x22)

    def missing_pb(self, seed: bytes = b"gone") -> Cid:
        """A dag-pb CID whose block is not stored."""
        return Cid.for_block(DAG_PB, encode_node([], encode_unixfs(UnixfsType.FILE, data=seed)))

    def store_raw_block(self, codec, block: bytes) -> Cid:
        return self._put(codec, block)


@pytest.fixture
def blockstore():
    return MemoryBlockstore()


@pytest.fixture
def builder(blockstore):
    return DagBuilder(blockstore)


@pytest.fixture
def node(blockstore):
    """Offline node whose DAG service counts fetches."""
    ufs = UnixfsNode(blockstore)
    ufs.dag = CountingDagService(blockstore)
    ufs.resolver = PathResolver(ufs.dag)
    return ufs


@pytest.fixture
def sample_dir(builder):
    """A directory holding a.txt (raw leaf, 10 bytes) and sub (empty directory)."""
    file_cid = builder.raw(b"0123456789")
    sub_cid = builder.directory([])
    root = builder.directory([("a.txt", file_cid, 10), ("sub", sub_cid, 0)])
    return {"root": root, "file": file_cid, "sub": sub_cid}
