"""Find the server a local process talks to most and measure its latency."""

__version__ = "0.1.0"
