# unixls/core/lister.py - Listing orchestration: resolve, enumerate, type, emit

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from ..models.ls import LsLink, LsObject, LsOptions, LsOutput
from .context import Context
from .dag import Node
from .directory import Directory, iter_node_links, open_directory
from .errors import InvalidPathError, MalformedNodeError, NotUnixfsDirectoryError
from .linktype import resolve_link_type
from .node import UnixfsNode
from .pb import Link

logger = logging.getLogger(__name__)


@dataclass
class ResolvedPath:
    """A reference as given by the caller and the node it resolved to."""
    label: str
    node: Node


class Lister:
    """
    Lists one or more references, either as a single LsOutput or as a stream
    of header / entry / footer fragments.

    Paths are always handled one after another in the order given; a path's
    fragments are all emitted before the next path starts.
    """

    def __init__(self, node: UnixfsNode, options: Optional[LsOptions] = None):
        self.options = options or LsOptions()
        self.dag = node.dag
        self.resolver = node.resolver
        # Without resolve-type, only blocks already stored locally are inspected
        self.type_dag = self.dag if self.options.resolve_type else self.dag.offline()

    # --- Resolution ---

    def resolve(self, ctx: Context, paths: Sequence[str]) -> List[ResolvedPath]:
        """
        Resolves every reference before anything is listed.

        The first failure aborts the whole request, so no output is produced
        for any path when one of them is bad.
        """
        if not paths:
            raise InvalidPathError("", "at least one path is required")
        resolved = []
        for path in paths:
            node = self.resolver.resolve(ctx, path)
            resolved.append(ResolvedPath(label=path, node=node))
        logger.info(f"Resolved {len(resolved)} path(s) for listing")
        return resolved

    # --- Helpers ---

    def _open(self, item: ResolvedPath) -> Optional[Directory]:
        try:
            return open_directory(self.dag, item.node)
        except MalformedNodeError as e:
            raise NotUnixfsDirectoryError(item.node.cid, item.label, str(e)) from e

    def make_ls_link(self, ctx: Context, link: Link) -> LsLink:
        link_type = resolve_link_type(ctx, self.type_dag, link, self.options.resolve_type)
        logger.debug(f"Entry '{link.name}' ({link.cid}) resolved to {link_type.name}")
        return LsLink(name=link.name, hash=str(link.cid), size=link.size, type=link_type)

    # --- Batch ---

    def list_batch(self, ctx: Context, resolved: Sequence[ResolvedPath]) -> LsOutput:
        """Builds one full LsObject per path and returns them together."""
        objects = []
        for item in resolved:
            directory = self._open(item)
            if directory is None:
                logger.info(f"'{item.label}' is not a directory, listing its links")
                links = list(item.node.links)
            else:
                links = directory.list_all(ctx)
            entries = [self.make_ls_link(ctx, link) for link in links]
            objects.append(LsObject.full(item.label, entries))
            logger.info(f"Listed '{item.label}': {len(entries)} entries")
        return LsOutput(multiple_folders=len(resolved) > 1, objects=objects)

    # --- Stream ---

    def stream(self, ctx: Context, resolved: Sequence[ResolvedPath]) -> Iterator[LsOutput]:
        """
        Yields a header fragment, one fragment per entry, then a footer
        fragment, for each path in turn.

        Each entry's type is resolved just before its fragment is yielded. If
        the consumer closes the generator early the context is cancelled.
        Fragments already yielded stay emitted when a later step fails.
        """
        multiple = len(resolved) > 1
        try:
            for item in resolved:
                directory = self._open(item)
                if directory is None:
                    logger.info(f"'{item.label}' is not a directory, streaming its links")
                    links = iter_node_links(ctx, item.node)
                else:
                    links = directory.iter_links(ctx)

                yield LsOutput(multiple_folders=multiple, objects=[LsObject.header(item.label)])
                count = 0
                for link in links:
                    entry = self.make_ls_link(ctx, link)
                    yield LsOutput(multiple_folders=multiple, objects=[LsObject.links_only([entry])])
                    count += 1
                yield LsOutput(multiple_folders=multiple, objects=[LsObject.footer()])
                logger.info(f"Streamed '{item.label}': {count} entries")
        except GeneratorExit:
            logger.info("Listing consumer went away, cancelling")
            ctx.cancel()
            raise

    # --- Entry point ---

    def run(self, ctx: Context, paths: Sequence[str]) -> Iterator[LsOutput]:
        """Resolves `paths`, then yields the batch output once or the stream fragments."""
        resolved = self.resolve(ctx, paths)
        if self.options.stream:
            yield from self.stream(ctx, resolved)
        else:
            yield self.list_batch(ctx, resolved)
