"""Camera/LiDAR time-to-collision estimation."""

__version__ = "0.1.0"

from . import calibration
from . import data
from . import fusion
from . import sensors
from . import utils
from . import viz
