"""SDP media sections built for the remote side of a transport."""

from __future__ import annotations

import copy
import re
from abc import ABC, abstractmethod
from typing import Any, Mapping

from ..errors import MediaSoupClientError
from .utils import format_params

_MIME_PREFIX_RE = re.compile(r"^(audio|video)/", re.IGNORECASE)

_ROLE_TO_SETUP = {"client": "active", "server": "passive", "auto": "actpass"}

_OPUS_SHARED_FLAGS = (
    ("opusStereo", "sprop-stereo", "stereo"),
    ("opusFec", "useinbandfec", "useinbandfec"),
    ("opusDtx", "usedtx", "usedtx"),
    ("opusCbr", "cbr", "cbr"),
)

_OPUS_ANSWER_VALUES = (
    ("opusMaxPlaybackRate", "maxplaybackrate"),
    ("opusMaxAverageBitrate", "maxaveragebitrate"),
    ("opusPtime", "ptime"),
)

_VIDEO_ANSWER_VALUES = (
    ("videoGoogleStartBitrate", "x-google-start-bitrate"),
    ("videoGoogleMaxBitrate", "x-google-max-bitrate"),
    ("videoGoogleMinBitrate", "x-google-min-bitrate"),
)

_VIDEO_MIME_TYPES = {"video/vp8", "video/vp9", "video/h264", "video/h265"}

_DROPPED_ON_DISABLE = ("ext", "ssrcs", "ssrcGroups", "simulcast", "rids")


def _codec_name(codec: Mapping[str, Any]) -> str:
    return _MIME_PREFIX_RE.sub("", codec["mimeType"], count=1)


def _rtp_entry(codec: Mapping[str, Any]) -> dict[str, Any]:
    rtp: dict[str, Any] = {
        "payload": codec["payloadType"],
        "codec": _codec_name(codec),
        "rate": codec.get("clockRate"),
    }
    channels = codec.get("channels")
    if channels is not None and int(channels) > 1:
        rtp["encoding"] = int(channels)
    return rtp


def _feedback_entries(codec: Mapping[str, Any]) -> list[dict[str, Any]]:
    return [
        {
            "payload": codec["payloadType"],
            "type": fb.get("type"),
            "subtype": fb.get("parameter"),
        }
        for fb in codec.get("rtcpFeedback") or []
    ]


def _payloads(codecs: list[Mapping[str, Any]]) -> str:
    return " ".join(str(int(codec["payloadType"])) for codec in codecs)


class MediaSection(ABC):
    """One m= section of a remote SDP, held as a parsed media object."""

    def __init__(self, ice_parameters: Mapping[str, Any], ice_candidates) -> None:
        self.media_object: dict[str, Any] = {}
        self.set_ice_parameters(ice_parameters)

        candidates = []
        for candidate in ice_candidates or []:
            # rtcp-mux is mandatory, so the component is always RTP (1).
            entry: dict[str, Any] = {
                "component": 1,
                "foundation": candidate.get("foundation"),
                "ip": candidate.get("ip"),
                "port": candidate.get("port"),
                "priority": candidate.get("priority"),
                "transport": candidate.get("protocol"),
                "type": candidate.get("type"),
            }
            if "tcpType" in candidate:
                entry["tcptype"] = candidate["tcpType"]
            candidates.append(entry)

        self.media_object["candidates"] = candidates
        self.media_object["endOfCandidates"] = "end-of-candidates"
        self.media_object["iceOptions"] = "renomination"

    @property
    def mid(self) -> str:
        """The media identifier of this section."""
        return str(self.media_object["mid"])

    @property
    def closed(self) -> bool:
        """Whether the section has been closed (port zero)."""
        return self.media_object.get("port") == 0

    def to_object(self) -> dict[str, Any]:
        """Return an independent copy of the media object."""
        return copy.deepcopy(self.media_object)

    def set_ice_parameters(self, ice_parameters: Mapping[str, Any]) -> None:
        """Set the ICE username fragment and password."""
        self.media_object["iceUfrag"] = ice_parameters.get("usernameFragment")
        self.media_object["icePwd"] = ice_parameters.get("password")

    def disable(self) -> None:
        """Make the section inactive and drop its RTP stream details."""
        self.media_object["direction"] = "inactive"
        for key in _DROPPED_ON_DISABLE:
            self.media_object.pop(key, None)

    def close(self) -> None:
        """Make the section inactive, set its port to zero and strip it."""
        self.media_object["direction"] = "inactive"
        self.media_object["port"] = 0
        for key in _DROPPED_ON_DISABLE:
            self.media_object.pop(key, None)
        self.media_object.pop("extmapAllowMixed", None)

    @abstractmethod
    def set_dtls_role(self, role: str) -> None:
        """Update the a=setup attribute for the given local DTLS role."""


class AnswerMediaSection(MediaSection):
    """A remote answer section replying to a locally offered m= section."""

    def __init__(
        self,
        ice_parameters,
        ice_candidates,
        dtls_parameters,
        sctp_parameters,
        offer_media_object,
        offer_rtp_parameters,
        answer_rtp_parameters,
        codec_options,
    ) -> None:
        super().__init__(ice_parameters, ice_candidates)

        kind = offer_media_object["type"]
        mo = self.media_object
        mo["mid"] = offer_media_object.get("mid")
        mo["type"] = kind
        mo["protocol"] = offer_media_object.get("protocol")
        mo["connection"] = {"ip": "127.0.0.1", "version": 4}
        mo["port"] = 7

        setup = _ROLE_TO_SETUP.get((dtls_parameters or {}).get("role"))
        if setup is not None:
            mo["setup"] = setup

        if kind in ("audio", "video"):
            self._fill_rtp(
                offer_media_object,
                offer_rtp_parameters,
                answer_rtp_parameters,
                codec_options,
            )
        elif kind == "application":
            sctp = sctp_parameters or {}
            mo["payloads"] = "webrtc-datachannel"
            mo["sctpPort"] = sctp.get("port")
            mo["maxMessageSize"] = sctp.get("maxMessageSize")

    def _fill_rtp(
        self,
        offer_media_object,
        offer_rtp_parameters,
        answer_rtp_parameters,
        codec_options,
    ) -> None:
        mo = self.media_object
        mo["direction"] = "recvonly"
        mo["rtp"] = []
        mo["rtcpFb"] = []
        mo["fmtp"] = []

        codecs = answer_rtp_parameters.get("codecs") or []

        for codec in codecs:
            mo["rtp"].append(_rtp_entry(codec))

            codec_parameters = dict(codec.get("parameters") or {})
            if codec_options:
                self._apply_codec_options(
                    codec, codec_parameters, offer_rtp_parameters, codec_options
                )

            config = format_params(codec_parameters)
            if config:
                mo["fmtp"].append({"payload": codec["payloadType"], "config": config})

            mo["rtcpFb"].extend(_feedback_entries(codec))

        mo["payloads"] = _payloads(codecs)

        offered_uris = {ext.get("uri") for ext in offer_media_object.get("ext") or []}
        mo["ext"] = [
            {"uri": ext["uri"], "value": ext["id"]}
            for ext in answer_rtp_parameters.get("headerExtensions") or []
            if ext.get("uri") in offered_uris
        ]

        # Allow both 1 byte and 2 bytes length header extensions.
        if isinstance(offer_media_object.get("extmapAllowMixed"), str):
            mo["extmapAllowMixed"] = "extmap-allow-mixed"

        simulcast = offer_media_object.get("simulcast")
        rids = offer_media_object.get("rids")
        if isinstance(simulcast, dict) and isinstance(rids, list):
            mo["simulcast"] = {"dir1": "recv", "list1": simulcast.get("list1")}
            mo["rids"] = [
                {"id": rid.get("id"), "direction": "recv"}
                for rid in rids
                if rid.get("direction") == "send"
            ]

        mo["rtcpMux"] = "rtcp-mux"
        mo["rtcpRsize"] = "rtcp-rsize"

    @staticmethod
    def _apply_codec_options(codec, codec_parameters, offer_rtp_parameters, options):
        payload_type = codec["payloadType"]
        offer_codec = next(
            (
                c
                for c in offer_rtp_parameters.get("codecs") or []
                if c.get("payloadType") == payload_type
            ),
            None,
        )
        if offer_codec is None:
            raise MediaSoupClientError(
                f"no offered codec with payload type {payload_type}"
            )

        mime_type = codec["mimeType"].lower()

        if mime_type == "audio/opus":
            offer_params = offer_codec.setdefault("parameters", {})
            for option, offer_key, answer_key in _OPUS_SHARED_FLAGS:
                if option in options:
                    flag = 1 if options[option] else 0
                    offer_params[offer_key] = flag
                    codec_parameters[answer_key] = flag
            for option, answer_key in _OPUS_ANSWER_VALUES:
                if option in options:
                    codec_parameters[answer_key] = int(options[option])
        elif mime_type in _VIDEO_MIME_TYPES:
            for option, answer_key in _VIDEO_ANSWER_VALUES:
                if option in options:
                    codec_parameters[answer_key] = int(options[option])

    def set_dtls_role(self, role: str) -> None:
        setup = _ROLE_TO_SETUP.get(role)
        if setup is not None:
            self.media_object["setup"] = setup


class OfferMediaSection(MediaSection):
    """A remote offer section for media the local side will receive."""

    def __init__(
        self,
        ice_parameters,
        ice_candidates,
        dtls_parameters,
        sctp_parameters,
        mid,
        kind,
        offer_rtp_parameters,
        stream_id,
        track_id,
    ) -> None:
        super().__init__(ice_parameters, ice_candidates)

        mo = self.media_object
        mo["mid"] = mid
        mo["type"] = kind
        mo["protocol"] = (
            "UDP/TLS/RTP/SAVPF" if sctp_parameters is None else "UDP/DTLS/SCTP"
        )
        mo["connection"] = {"ip": "127.0.0.1", "version": 4}
        mo["port"] = 7
        mo["setup"] = "actpass"

        if kind in ("audio", "video"):
            self._fill_rtp(offer_rtp_parameters, stream_id, track_id)
        elif kind == "application":
            sctp = sctp_parameters or {}
            mo["payloads"] = "webrtc-datachannel"
            mo["sctpPort"] = sctp.get("port")
            mo["maxMessageSize"] = sctp.get("maxMessageSize")

    def _fill_rtp(self, offer_rtp_parameters, stream_id, track_id) -> None:
        mo = self.media_object
        mo["direction"] = "sendonly"
        mo["rtp"] = []
        mo["rtcpFb"] = []
        mo["fmtp"] = []

        codecs = offer_rtp_parameters.get("codecs") or []

        for codec in codecs:
            mo["rtp"].append(_rtp_entry(codec))
            config = format_params(codec.get("parameters") or {})
            if config:
                mo["fmtp"].append({"payload": codec["payloadType"], "config": config})
            mo["rtcpFb"].extend(_feedback_entries(codec))

        mo["payloads"] = _payloads(codecs)
        mo["ext"] = [
            {"uri": ext["uri"], "value": ext["id"]}
            for ext in offer_rtp_parameters.get("headerExtensions") or []
        ]
        mo["rtcpMux"] = "rtcp-mux"
        mo["rtcpRsize"] = "rtcp-rsize"

        encoding = offer_rtp_parameters["encodings"][0]
        ssrc = int(encoding["ssrc"])
        rtx = encoding.get("rtx")
        rtx_ssrc = int(rtx["ssrc"]) if isinstance(rtx, dict) and "ssrc" in rtx else 0

        mo["ssrcs"] = []
        mo["ssrcGroups"] = []

        cname = (offer_rtp_parameters.get("rtcp") or {}).get("cname")
        if not isinstance(cname, str):
            return

        msid = f"{stream_id} {track_id}"
        mo["ssrcs"].append({"id": ssrc, "attribute": "cname", "value": cname})
        mo["ssrcs"].append({"id": ssrc, "attribute": "msid", "value": msid})

        if rtx_ssrc:
            mo["ssrcs"].append({"id": rtx_ssrc, "attribute": "cname", "value": cname})
            mo["ssrcs"].append({"id": rtx_ssrc, "attribute": "msid", "value": msid})
            # Associate original and retransmission SSRCs.
            mo["ssrcGroups"].append(
                {"semantics": "FID", "ssrcs": f"{ssrc} {rtx_ssrc}"}
            )

    def set_dtls_role(self, role: str) -> None:
        # The SDP offer must always have a=setup:actpass.
        self.media_object["setup"] = "actpass"