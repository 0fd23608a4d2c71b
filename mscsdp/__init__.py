"""Remote SDP building, SDP object helpers and the package's error types."""

__version__ = "3.4.2"
__all__ = ["errors", "utils", "sdp"]