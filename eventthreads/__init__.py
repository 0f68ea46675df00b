"""EventThreads: time-boxed discussion threads with realtime fan-out."""

__version__ = "1.0.0"
