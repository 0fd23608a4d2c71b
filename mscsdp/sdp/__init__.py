"""SDP media sections, the remote SDP builder and SDP object utilities."""

__all__ = ["utils", "media_section", "remote_sdp"]