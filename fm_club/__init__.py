"""FM Club - single-player football club management simulation."""

__version__ = "0.1.0"
