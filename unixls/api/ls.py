# unixls/api/ls.py - API Router for directory listings

import io
import json
import logging
from typing import Iterator, List, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse, StreamingResponse

# Import models and helpers
from ..models.ls import LsOptions, LsOutput
from ..core.context import Context
from ..core.errors import (
    BlockNotFoundError, ContextCancelledError, InvalidPathError, LinkNotFoundError, UnixlsError
)
from ..core.lister import Lister, ResolvedPath
from ..core.node import REQUEST_TIMEOUT, UnixfsNode
from ..core.text import encode_text, render_text

logger = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"
TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"

# Create an API router
router = APIRouter(
    prefix="/api/v0",
    tags=["Listing"],
)


# --- Dependencies ---
def get_node(request: Request) -> UnixfsNode:
    """Returns the node created at application startup."""
    node = getattr(request.app.state, "node", None)
    if node is None:
        logger.error("Listing requested but no node is attached to the application.")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Node not available")
    return node


# --- Error mapping ---
def to_http_exception(error: UnixlsError) -> HTTPException:
    """Maps a listing error raised before any output was sent to an HTTP error."""
    if isinstance(error, InvalidPathError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, (BlockNotFoundError, LinkNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ContextCancelledError):
        return HTTPException(status_code=status.HTTP_408_REQUEST_TIMEOUT, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


def stream_error_line(error: Exception, encoding: str) -> str:
    """The trailing chunk written when a stream fails after output has started."""
    if encoding == "text":
        return f"Error: {error}\n"
    return json.dumps({"Message": str(error), "Code": 0, "Type": "error"}) + "\n"


# --- Streaming body ---
def stream_body(lister: Lister, ctx: Context, resolved: List[ResolvedPath], encoding: str) -> Iterator[str]:
    fragments = lister.stream(ctx, resolved)
    try:
        for output in fragments:
            if encoding == "text":
                buf = io.StringIO()
                encode_text(output, buf, headers=lister.options.headers)
                yield buf.getvalue()
            else:
                yield output.model_dump_json(by_alias=True) + "\n"
    except UnixlsError as e:
        logger.warning(f"Streamed listing aborted: {e}")
        yield stream_error_line(e, encoding)
    except Exception as e:
        logger.error(f"Unexpected error while streaming listing: {e}", exc_info=True)
        yield stream_error_line(e, encoding)
    finally:
        fragments.close()


# --- API Endpoints ---

@router.api_route(
    "/ls",
    methods=["GET", "POST"],
    response_model=LsOutput,
    summary="List directory contents",
    description="Lists the links of UnixFS directories (or any dag-pb node) at the given paths. "
                "With stream=true, entries are sent as newline-delimited LsOutput fragments as they are found."
)
def list_paths(
    arg: List[str] = Query(..., description="Paths of the objects to list, /ipfs/<cid>[/path] or <cid>[/path]."),
    headers: bool = Query(False, description="Print table headers (Hash, Size, Name). Text encoding only."),
    resolve_type: bool = Query(True, alias="resolve-type", description="Resolve linked objects to find out their types."),
    stream: bool = Query(False, description="Stream directory entries as they are found."),
    encoding: Literal["json", "text"] = Query("json", description="Output encoding."),
    node: UnixfsNode = Depends(get_node),
):
    """Lists directory entries for one or more paths."""
    options = LsOptions(headers=headers, resolve_type=resolve_type, stream=stream)
    ctx = Context(timeout=REQUEST_TIMEOUT or None)
    lister = Lister(node, options)
    logger.info(f"Listing {len(arg)} path(s): stream={stream}, resolve-type={resolve_type}, encoding={encoding}")

    try:
        # Every path is resolved before any output is produced
        resolved = lister.resolve(ctx, arg)
        if not stream:
            output = lister.list_batch(ctx, resolved)
            if encoding == "text":
                return PlainTextResponse(render_text([output], headers=headers), media_type=TEXT_MEDIA_TYPE)
            return output
    except UnixlsError as e:
        logger.warning(f"Listing failed for {arg}: {e}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Unexpected error listing {arg}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An unexpected server error occurred while listing.")

    media_type = TEXT_MEDIA_TYPE if encoding == "text" else NDJSON_MEDIA_TYPE
    return StreamingResponse(stream_body(lister, ctx, resolved, encoding), media_type=media_type)
