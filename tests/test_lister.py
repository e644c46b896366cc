# tests/test_lister.py - Batch and streamed listings

from collections import Counter

import pytest

from unixls.core.cid import DAG_PB
from unixls.core.context import Context
from unixls.core.errors import (
    BlockNotFoundError, ContextCancelledError, InvalidPathError, NotUnixfsDirectoryError
)
from unixls.core.lister import Lister
from unixls.core.pb import Link, encode_node, encode_unixfs
from unixls.core.text import render_text
from unixls.models.ls import LsOptions, ObjectKind, UnixfsType


def run(node, paths, **options):
    return list(Lister(node, LsOptions(**options)).run(Context(), paths))


def entries_of(outputs):
    return [link for output in outputs for obj in output.objects for link in obj.links]


@pytest.fixture
def mixed_dir(builder):
    """Directory with every kind of entry, including a missing one."""
    entries = [
        ("leaf.bin", builder.raw(b"raw bytes"), 9),
        ("notes.txt", builder.file(b"hello"), 5),
        ("docs", builder.directory([]), 0),
        ("link", builder.symlink("notes.txt"), 9),
        ("big", builder.shard([], fanout=256), 0),
        ("gone", builder.missing_pb(), 42),
    ]
    return builder.directory(entries)


# --- Batch ---

def test_batch_emits_one_full_object_per_path(node, sample_dir):
    outputs = run(node, [str(sample_dir["root"])])
    assert len(outputs) == 1
    output = outputs[0]
    assert output.multiple_folders is False
    assert [obj.kind for obj in output.objects] == [ObjectKind.FULL]
    assert output.objects[0].hash == str(sample_dir["root"])
    assert [(l.name, l.type) for l in output.objects[0].links] == [
        ("a.txt", UnixfsType.FILE),
        ("sub", UnixfsType.DIRECTORY),
    ]


def test_batch_text_scenario(node, sample_dir):
    outputs = run(node, [str(sample_dir["root"])])
    assert render_text(outputs) == f"{sample_dir['file']}\t10\ta.txt\n{sample_dir['sub']}\t0\tsub/\n"


def test_two_paths_with_headers_text(node, sample_dir):
    p0 = str(sample_dir["root"])
    p1 = f"/ipfs/{sample_dir['root']}/sub"
    text = render_text(run(node, [p0, p1]), headers=True)
    lines = text.split("\n")
    assert lines[0] == f"{p0}:"
    assert lines[1] == "Hash\tSize\tName"
    assert lines[4] == ""
    assert lines[5] == f"{p1}:"
    assert text.endswith("Hash\tSize\tName\n\n")


def test_mixed_entry_types(node, mixed_dir):
    types = {l.name: l.type for l in entries_of(run(node, [str(mixed_dir)], resolve_type=False))}
    assert types == {
        "leaf.bin": UnixfsType.FILE,
        "notes.txt": UnixfsType.FILE,
        "docs": UnixfsType.DIRECTORY,
        "link": UnixfsType.SYMLINK,
        "big": UnixfsType.HAMT_SHARD,
        "gone": UnixfsType.UNKNOWN,
    }


@pytest.mark.parametrize("stream", [False, True])
def test_missing_entry_fatal_with_resolve_type(node, mixed_dir, stream):
    with pytest.raises(BlockNotFoundError):
        run(node, [str(mixed_dir)], resolve_type=True, stream=stream)


def test_raw_leaves_are_never_fetched(node, builder):
    leaves = [builder.raw(bytes([i])) for i in range(3)]
    root = builder.directory([(f"f{i}", cid, 1) for i, cid in enumerate(leaves)])
    node.dag.fetched.clear()
    for stream in (False, True):
        links = entries_of(run(node, [str(root)], stream=stream))
        assert {l.type for l in links} == {UnixfsType.FILE}
    assert not set(leaves) & set(node.dag.fetched)


# --- Stream ---

def test_stream_fragment_order(node, sample_dir):
    outputs = run(node, [str(sample_dir["root"])], stream=True)
    kinds = [output.objects[0].kind for output in outputs]
    assert kinds == [ObjectKind.HEADER, ObjectKind.LINKS, ObjectKind.LINKS, ObjectKind.FOOTER]
    assert all(len(output.objects) == 1 for output in outputs)
    assert all(len(output.objects[0].links) == 1 for output in outputs[1:-1])


@pytest.mark.parametrize("resolve_type", [False, True])
def test_batch_and_stream_agree(node, builder, resolve_type):
    f = builder.raw(b"x")
    child = builder.shard([("03", [("c", builder.directory([]), 0)])])
    sharded = builder.shard([("FF", [("z", f, 1)]), ("10", child), ("00", [("a", builder.file(b"a"), 1)])])
    flat = builder.directory([("s", sharded, 0), ("f", f, 1)])
    paths = [str(flat), str(sharded)]

    def multiset(outputs):
        return Counter((l.name, l.hash, l.size, l.type) for l in entries_of(outputs))

    batch = run(node, paths, resolve_type=resolve_type)
    streamed = run(node, paths, resolve_type=resolve_type, stream=True)
    assert multiset(batch) == multiset(streamed)
    assert render_text(batch) == render_text(streamed)


def test_multi_path_fragments_never_interleave(node, sample_dir, builder):
    other = builder.directory([("x", builder.raw(b"x"), 1)])
    paths = [str(sample_dir["root"]), str(other), str(sample_dir["sub"])]
    outputs = run(node, paths, stream=True)
    assert all(output.multiple_folders for output in outputs)

    current = None
    seen = []
    for output in outputs:
        obj = output.objects[0]
        if obj.kind == ObjectKind.HEADER:
            assert current is None, "header before previous footer"
            current = obj.hash
            seen.append(current)
        elif obj.kind == ObjectKind.FOOTER:
            assert current is not None
            current = None
        else:
            assert current is not None, "entry outside a header/footer pair"
    assert current is None
    assert seen == paths


def test_non_directory_lists_own_links(node, builder):
    chunks = [builder.raw(b"part-1"), builder.raw(b"part-2")]
    big_file = builder.pb(
        UnixfsType.FILE,
        links=[Link("", chunks[0], 6), Link("", chunks[1], 6)],
        filesize=12,
    )
    batch = run(node, [str(big_file)])
    assert [l.hash for l in entries_of(batch)] == [str(c) for c in chunks]

    streamed = run(node, [str(big_file)], stream=True)
    kinds = [output.objects[0].kind for output in streamed]
    assert kinds == [ObjectKind.HEADER, ObjectKind.LINKS, ObjectKind.LINKS, ObjectKind.FOOTER]


def test_raw_leaf_root_lists_nothing(node, builder):
    leaf = builder.raw(b"just bytes")
    assert entries_of(run(node, [str(leaf)])) == []
    kinds = [o.objects[0].kind for o in run(node, [str(leaf)], stream=True)]
    assert kinds == [ObjectKind.HEADER, ObjectKind.FOOTER]


def test_unparsable_root_is_reported_with_path(node, builder):
    bad = builder.store_raw_block(DAG_PB, encode_node([], b"\x08\x63"))
    with pytest.raises(NotUnixfsDirectoryError) as excinfo:
        run(node, [str(bad)])
    assert str(bad) in str(excinfo.value)
    assert "is not a UnixFS directory" in str(excinfo.value)


# --- Failure policy ---

@pytest.mark.parametrize("stream", [False, True])
def test_resolution_failure_aborts_before_any_output(node, sample_dir, builder, stream):
    lister = Lister(node, LsOptions(stream=stream))
    outputs = lister.run(Context(), [str(sample_dir["root"]), str(builder.missing_pb())])
    with pytest.raises(BlockNotFoundError):
        next(outputs)


def test_no_paths_is_an_error(node):
    with pytest.raises(InvalidPathError):
        run(node, [])


def test_stream_failure_keeps_earlier_fragments(node, sample_dir, builder):
    broken = builder.directory([("ok", builder.raw(b"x"), 1), ("gone", builder.missing_pb(), 1)])
    lister = Lister(node, LsOptions(stream=True, resolve_type=True))
    received = []
    with pytest.raises(BlockNotFoundError):
        for output in lister.run(Context(), [str(sample_dir["root"]), str(broken)]):
            received.append(output)
    kinds = [o.objects[0].kind for o in received]
    # first path complete, second path's header and first entry already emitted
    assert kinds == [
        ObjectKind.HEADER, ObjectKind.LINKS, ObjectKind.LINKS, ObjectKind.FOOTER,
        ObjectKind.HEADER, ObjectKind.LINKS,
    ]


def test_closing_the_stream_cancels_the_context(node, sample_dir):
    ctx = Context()
    fragments = Lister(node, LsOptions(stream=True)).run(ctx, [str(sample_dir["root"])])
    next(fragments)
    fragments.close()
    assert ctx.cancelled


def test_cancelled_context_stops_the_stream(node, sample_dir):
    ctx = Context()
    fragments = Lister(node, LsOptions(stream=True)).run(ctx, [str(sample_dir["root"])])
    next(fragments)
    ctx.cancel()
    with pytest.raises(ContextCancelledError):
        next(fragments)


def test_non_utf8_entry_name_is_listed(node, builder):
    leaf = builder.raw(b"x")
    block = encode_node([Link("cafX.txt", leaf, 1)], encode_unixfs(UnixfsType.DIRECTORY))
    root = builder.store_raw_block(DAG_PB, block.replace(b"cafX", b"caf\xe9"))
    [entry] = entries_of(run(node, [str(root)]))
    assert entry.name == "caf\ufffd.txt"
    assert entry.hash == str(leaf)
