# unixls/core/text.py - Plain text rendering of listings

import io
from typing import Iterable, TextIO

from ..models.ls import LsOutput
from ..utils.tabwriter import TabWriter

HEADER_CELLS = ("Hash", "Size", "Name")


def encode_text(output: LsOutput, out: TextIO, headers: bool = False, align: bool = False) -> None:
    """
    Renders one LsOutput (a full listing or a single fragment) onto `out`.

    Produces the same text for a listing whether it arrives as one full
    object or as header / entry / footer fragments. Flushes before returning.
    """
    tw = TabWriter(out, align=align)
    for obj in output.objects:
        if obj.has_header:
            if output.multiple_folders:
                tw.write(f"{obj.hash}:\n")
            if headers:
                tw.writeln(*HEADER_CELLS)
        if obj.has_links:
            for link in obj.links:
                tw.writeln(link.hash, link.size, link.display_name)
        if obj.has_footer:
            if output.multiple_folders:
                tw.write("\n")
    tw.flush()


def render_text(outputs: Iterable[LsOutput], headers: bool = False, align: bool = False) -> str:
    buf = io.StringIO()
    for output in outputs:
        encode_text(output, buf, headers=headers, align=align)
    return buf.getvalue()
