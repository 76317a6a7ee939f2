"""
Parser for kernels given on the command line.

Cells are separated by commas, rows by bars, a trailing bar is allowed:

    0.1,0.2,0.3|0,0,0|-0.1,-0.2,-0.3

The side length is taken from the number of bars, so every row has to have
exactly that many cells. A kernel whose cells do not sum to zero is
normalised to sum=1; zero-sum kernels (edge detectors) are kept as written.
"""

import re

import numpy as np

from .errors import CustomMatrixError

ROW_SEP = "|"
CELL_SEP = ","

# ASCII only, independent of the process locale
NUMBER = re.compile(
    r"""\s*[+-]?(?:
        (?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?
        |inf(?:inity)?
        |nan
    )""",
    re.VERBOSE | re.IGNORECASE,
)


def matrix_size(text):
    return text.count(ROW_SEP) + (0 if text.endswith(ROW_SEP) else 1)


def parse_custom_matrix(text):
    """
    text : matrix specification, e.g. "1,2,1|2,4,2|1,2,1"

    returns an N x N float64 array, raises CustomMatrixError on bad input
    """
    size = matrix_size(text)
    out = np.zeros((size, size), dtype=np.float64)
    pos = 0

    for i in range(size):
        for j in range(size):
            match = NUMBER.match(text, pos)
            if match is None:
                raise CustomMatrixError(text, pos, "Expected a number")
            out[i, j] = float(match.group())
            pos = match.end()

            last_cell = j == size - 1
            last_row = i == size - 1
            if not last_cell:
                if not text.startswith(CELL_SEP, pos):
                    raise CustomMatrixError(text, pos, f"Expected '{CELL_SEP}'")
                pos += 1
            elif not last_row:
                if not text.startswith(ROW_SEP, pos):
                    raise CustomMatrixError(text, pos, f"Expected '{ROW_SEP}'")
                pos += 1

    rest = text[pos:]
    if rest not in ("", ROW_SEP):
        raise CustomMatrixError(text, pos, "Extra characters")

    total = out.sum()
    if total != 0:
        out /= total
    return out
