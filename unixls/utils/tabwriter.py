# unixls/utils/tabwriter.py - Buffered writer for tab-separated cells
#
# Cells are terminated by '\t'. Text is held until flush(). Without alignment
# the tabs are written as-is; with alignment every run of consecutive lines
# that share a column is padded with spaces to that column's widest cell
# (the last cell of a line is never padded).

from typing import List, TextIO


class TabWriter:
    def __init__(self, out: TextIO, align: bool = False, min_width: int = 1, padding: int = 1):
        self.out = out
        self.align = align
        self.min_width = min_width
        self.padding = padding
        self._buffer: List[str] = []

    def write(self, text: str) -> None:
        self._buffer.append(text)

    def writeln(self, *cells) -> None:
        self.write("\t".join(str(cell) for cell in cells) + "\n")

    def flush(self) -> None:
        text = "".join(self._buffer)
        self._buffer.clear()
        if not text:
            return
        if self.align:
            text = self._align(text)
        self.out.write(text)

    def _align(self, text: str) -> str:
        lines = text.split("\n")
        rows = [line.split("\t") for line in lines]
        widths = [[0] * (len(row) - 1) for row in rows]
        max_cols = max(len(row) - 1 for row in rows)

        for col in range(max_cols):
            start = None
            for i in range(len(rows) + 1):
                has_cell = i < len(rows) and len(rows[i]) - 1 > col
                if has_cell and start is None:
                    start = i
                elif not has_cell and start is not None:
                    width = max(len(rows[k][col]) for k in range(start, i)) + self.padding
                    width = max(width, self.min_width)
                    for k in range(start, i):
                        widths[k][col] = width
                    start = None

        aligned = []
        for row, row_widths in zip(rows, widths):
            cells = [cell.ljust(width) for cell, width in zip(row[:-1], row_widths)]
            aligned.append("".join(cells) + row[-1])
        return "\n".join(aligned)
