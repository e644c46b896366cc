# unixls/core/errors.py - Exception hierarchy for the listing core
#
# Everything raised by the core derives from UnixlsError so the API layer and
# the CLI can catch it in one place.


class UnixlsError(Exception):
    """Base class for listing errors."""
    pass


class InvalidPathError(UnixlsError):
    """A reference string could not be parsed into a CID and path segments."""
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"invalid path {path!r}: {reason}")


class BlockNotFoundError(UnixlsError):
    """
    The block for a CID is not available.

    Raised by blockstores for a local miss and by the DAG service when neither
    the blockstore nor the remote exchange (if any) has the block.
    """
    def __init__(self, cid, message: str = None):
        self.cid = cid
        super().__init__(message or f"block {cid} not found")


class LinkNotFoundError(UnixlsError):
    """A path segment does not name a link of its parent node."""
    def __init__(self, name: str, parent):
        self.name = name
        self.parent = parent
        super().__init__(f"no link named {name!r} under {parent}")


class MalformedNodeError(UnixlsError):
    """dag-pb or UnixFS bytes could not be decoded."""
    pass


class UnsupportedCodecError(UnixlsError):
    """The block's codec is neither raw nor dag-pb."""
    def __init__(self, cid):
        self.cid = cid
        super().__init__(f"unsupported codec 0x{cid.codec:x} for {cid}")


class NotUnixfsDirectoryError(UnixlsError):
    """A dag-pb node carries UnixFS data that cannot be interpreted at all."""
    def __init__(self, cid, path: str, reason: str):
        self.cid = cid
        self.path = path
        super().__init__(f"the data in {cid} (at {path!r}) is not a UnixFS directory: {reason}")


class BlockFetchError(UnixlsError):
    """The remote exchange failed for a reason other than not-found."""
    def __init__(self, cid, reason: str):
        self.cid = cid
        super().__init__(f"fetching {cid} failed: {reason}")


class ContextCancelledError(UnixlsError):
    """The invocation was cancelled or ran past its deadline."""
    def __init__(self, deadline_exceeded: bool = False):
        self.deadline_exceeded = deadline_exceeded
        super().__init__("context deadline exceeded" if deadline_exceeded else "context canceled")
