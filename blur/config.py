from dataclasses import dataclass
from typing import Optional, Tuple

from .pipeline import Algorithm

DEFAULT_MATSIZE = 5
DEFAULT_SIGMA = 1.4
DEFAULT_SOBEL_TYPE = 0
DEFAULT_THRESHOLD = (0, 255)
MAX_CHANNELS = 4


@dataclass(frozen=True)
class RunConfig:
    infile: str
    outfile: str
    matsize: int = DEFAULT_MATSIZE
    channels: int = 0  # 0 keeps the input's channel count
    sobel_type: int = DEFAULT_SOBEL_TYPE
    sigma: float = DEFAULT_SIGMA
    threshold: Tuple[int, int] = DEFAULT_THRESHOLD
    custom_matrix: Optional[str] = None
    algorithm: Algorithm = Algorithm.NONE
    verbose: bool = False
