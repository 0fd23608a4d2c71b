"""The remote SDP a transport negotiates against, built from server parameters."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from ..errors import MediaSoupClientError, MediaSoupClientTypeError
from .media_section import AnswerMediaSection, MediaSection, OfferMediaSection


@dataclass(frozen=True)
class MediaSectionIdx:
    """Position for the next media section, and the MID it would reuse."""

    idx: int
    reuse_mid: str = ""


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _fmt_rtp(rtp: Mapping[str, Any]) -> str:
    line = f"rtpmap:{rtp['payload']} {rtp['codec']}/{rtp.get('rate')}"
    if rtp.get("encoding") is not None:
        line += f"/{rtp['encoding']}"
    return line


def _fmt_fmtp(fmtp: Mapping[str, Any]) -> str:
    return f"fmtp:{fmtp['payload']} {fmtp.get('config', '')}"


def _fmt_rtcp_fb(fb: Mapping[str, Any]) -> str:
    line = f"rtcp-fb:{fb['payload']} {fb.get('type')}"
    if _present(fb.get("subtype")):
        line += f" {fb['subtype']}"
    return line


def _fmt_ext(ext: Mapping[str, Any]) -> str:
    line = f"extmap:{ext['value']}"
    if _present(ext.get("direction")):
        line += f"/{ext['direction']}"
    line += f" {ext['uri']}"
    if _present(ext.get("config")):
        line += f" {ext['config']}"
    return line


def _fmt_candidate(candidate: Mapping[str, Any]) -> str:
    line = (
        f"candidate:{candidate.get('foundation')} {candidate.get('component')} "
        f"{candidate.get('transport')} {candidate.get('priority')} "
        f"{candidate.get('ip')} {candidate.get('port')} typ {candidate.get('type')}"
    )
    if _present(candidate.get("raddr")):
        line += f" raddr {candidate['raddr']}"
    if _present(candidate.get("rport")):
        line += f" rport {candidate['rport']}"
    if _present(candidate.get("tcptype")):
        line += f" tcptype {candidate['tcptype']}"
    if _present(candidate.get("generation")):
        line += f" generation {candidate['generation']}"
    return line


def _fmt_ssrc(line: Mapping[str, Any]) -> str:
    text = f"ssrc:{line['id']} {line.get('attribute')}"
    if line.get("value") is not None:
        text += f":{line['value']}"
    return text


def _fmt_rid(rid: Mapping[str, Any]) -> str:
    line = f"rid:{rid['id']} {rid.get('direction')}"
    if _present(rid.get("params")):
        line += f" {rid['params']}"
    return line


def _fmt_simulcast(simulcast: Mapping[str, Any]) -> str:
    line = f"simulcast:{simulcast.get('dir1')} {simulcast.get('list1')}"
    if _present(simulcast.get("dir2")):
        line += f" {simulcast['dir2']} {simulcast.get('list2')}"
    return line


def _flag(value: Any) -> str:
    return str(value)


# Attribute lines in the order an SDP writer emits them: (key, is_list, formatter).
_ATTRIBUTES: tuple[tuple[str, bool, Callable[[Any], str]], ...] = (
    ("rtp", True, _fmt_rtp),
    ("fmtp", True, _fmt_fmtp),
    ("rtcpFb", True, _fmt_rtcp_fb),
    ("ext", True, _fmt_ext),
    ("extmapAllowMixed", False, lambda _: "extmap-allow-mixed"),
    ("setup", False, lambda v: f"setup:{v}"),
    ("mid", False, lambda v: f"mid:{v}"),
    ("msid", False, lambda v: f"msid:{v}"),
    ("direction", False, _flag),
    ("icelite", False, _flag),
    ("iceUfrag", False, lambda v: f"ice-ufrag:{v}"),
    ("icePwd", False, lambda v: f"ice-pwd:{v}"),
    ("fingerprint", False, lambda v: f"fingerprint:{v.get('type')} {v.get('hash')}"),
    ("candidates", True, _fmt_candidate),
    ("endOfCandidates", False, _flag),
    ("iceOptions", False, lambda v: f"ice-options:{v}"),
    ("ssrcs", True, _fmt_ssrc),
    ("ssrcGroups", True, lambda g: f"ssrc-group:{g.get('semantics')} {g.get('ssrcs')}"),
    (
        "msidSemantic",
        False,
        lambda v: f"msid-semantic: {v.get('semantic')} {v.get('token')}",
    ),
    ("groups", True, lambda g: f"group:{g.get('type')} {g.get('mids')}"),
    ("rtcpMux", False, _flag),
    ("rtcpRsize", False, _flag),
    ("rids", True, _fmt_rid),
    ("simulcast", False, _fmt_simulcast),
    ("sctpPort", False, lambda v: f"sctp-port:{v}"),
    ("maxMessageSize", False, lambda v: f"max-message-size:{v}"),
)


def _attribute_lines(obj: Mapping[str, Any]) -> Iterable[str]:
    for key, is_list, formatter in _ATTRIBUTES:
        value = obj.get(key)
        if value is None:
            continue
        if is_list:
            for item in value:
                yield f"a={formatter(item)}"
        else:
            yield f"a={formatter(value)}"


def _media_lines(media: Mapping[str, Any]) -> Iterable[str]:
    yield (
        f"m={media.get('type')} {media.get('port')} "
        f"{media.get('protocol')} {media.get('payloads', '')}"
    )
    connection = media.get("connection")
    if connection is not None:
        yield f"c=IN IP{connection.get('version')} {connection.get('ip')}"
    yield from _attribute_lines(media)


def _write_sdp(session: Mapping[str, Any]) -> str:
    origin = session["origin"]
    timing = session.get("timing") or {}
    lines = [
        f"v={session.get('version', 0)}",
        (
            f"o={origin.get('username')} {origin.get('sessionId')} "
            f"{origin.get('sessionVersion')} {origin.get('netType')} "
            f"IP{origin.get('ipVer')} {origin.get('address')}"
        ),
        f"s={session.get('name', '-')}",
        f"t={timing.get('start', 0)} {timing.get('stop', 0)}",
    ]
    lines.extend(_attribute_lines(session))
    for media in session.get("media", []):
        lines.extend(_media_lines(media))
    return "\r\n".join(lines) + "\r\n"


class RemoteSdp:
    """Holds the remote media sections and renders them as SDP text."""

    def __init__(self, ice_parameters, ice_candidates, dtls_parameters, sctp_parameters):
        self.ice_parameters: dict[str, Any] = copy.deepcopy(dict(ice_parameters or {}))
        self.ice_candidates: list[Any] = copy.deepcopy(list(ice_candidates or []))
        self.dtls_parameters: dict[str, Any] = copy.deepcopy(dict(dtls_parameters or {}))
        self.sctp_parameters = copy.deepcopy(sctp_parameters)

        self._media_sections: list[MediaSection] = []
        self._mid_to_index: dict[str, int] = {}
        self._first_mid = ""

        self._sdp_object: dict[str, Any] = {
            "version": 0,
            "origin": {
                "address": "0.0.0.0",
                "ipVer": 4,
                "netType": "IN",
                "sessionId": 10000,
                "sessionVersion": 0,
                "username": "libmediasoupclient",
            },
            "name": "-",
            "timing": {"start": 0, "stop": 0},
            "media": [],
        }

        if "iceLite" in self.ice_parameters:
            self._sdp_object["icelite"] = "ice-lite"

        self._sdp_object["msidSemantic"] = {"semantic": "WMS", "token": "*"}

        fingerprints = self.dtls_parameters.get("fingerprints")
        if not fingerprints:
            raise MediaSoupClientTypeError("missing dtlsParameters.fingerprints")
        # The latest fingerprint is the one used.
        latest = fingerprints[-1]
        self._sdp_object["fingerprint"] = {
            "type": latest.get("algorithm"),
            "hash": latest.get("value"),
        }

        self._sdp_object["groups"] = [{"type": "BUNDLE", "mids": ""}]

    @property
    def sdp_object(self) -> dict[str, Any]:
        """An independent copy of the session object."""
        return copy.deepcopy(self._sdp_object)

    def update_ice_parameters(self, ice_parameters) -> None:
        """Apply new ICE parameters to every media section."""
        self.ice_parameters = copy.deepcopy(dict(ice_parameters))
        if "iceLite" in self.ice_parameters:
            self._sdp_object["icelite"] = "ice-lite"
        for idx, section in enumerate(self._media_sections):
            section.set_ice_parameters(self.ice_parameters)
            self._sdp_object["media"][idx] = section.to_object()

    def update_dtls_role(self, role: str) -> None:
        """Apply a new DTLS role to every media section."""
        self.dtls_parameters["role"] = role
        if "iceLite" in self.ice_parameters:
            self._sdp_object["icelite"] = "ice-lite"
        for idx, section in enumerate(self._media_sections):
            section.set_dtls_role(role)
            self._sdp_object["media"][idx] = section.to_object()

    def get_next_media_section_idx(self) -> MediaSectionIdx:
        """Return the first closed section's position, or the next free one."""
        for idx, section in enumerate(self._media_sections):
            if section.closed:
                return MediaSectionIdx(idx, section.mid)
        return MediaSectionIdx(len(self._media_sections))

    def send(
        self,
        offer_media_object,
        reuse_mid,
        offer_rtp_parameters,
        answer_rtp_parameters,
        codec_options,
    ) -> None:
        """Add (or reuse a closed slot for) an answer to a local send section."""
        section = AnswerMediaSection(
            self.ice_parameters,
            self.ice_candidates,
            self.dtls_parameters,
            self.sctp_parameters,
            offer_media_object,
            offer_rtp_parameters,
            answer_rtp_parameters,
            codec_options,
        )
        if reuse_mid:
            self._replace_media_section(section, reuse_mid)
        else:
            self._add_media_section(section)

    def send_sctp_association(self, offer_media_object) -> None:
        """Add an answer section for the local data channel offer."""
        section = AnswerMediaSection(
            self.ice_parameters,
            self.ice_candidates,
            self.dtls_parameters,
            self.sctp_parameters,
            offer_media_object,
            {},
            {},
            None,
        )
        self._add_media_section(section)

    def recv_sctp_association(self) -> None:
        """Add an offer section for receiving data channels."""
        section = OfferMediaSection(
            self.ice_parameters,
            self.ice_candidates,
            self.dtls_parameters,
            self.sctp_parameters,
            "datachannel",
            "application",
            {},
            "",
            "",
        )
        self._add_media_section(section)

    def receive(self, mid, kind, offer_rtp_parameters, stream_id, track_id) -> None:
        """Add an offer section for remote media, recycling a closed one if any."""
        section = OfferMediaSection(
            self.ice_parameters,
            self.ice_candidates,
            self.dtls_parameters,
            None,
            mid,
            kind,
            offer_rtp_parameters,
            stream_id,
            track_id,
        )
        # A closed m=audio section may be recycled for a new m=video.
        closed = next((s for s in self._media_sections if s.closed), None)
        if closed is not None:
            self._replace_media_section(section, closed.mid)
        else:
            self._add_media_section(section)

    def _index_of(self, mid: str) -> int:
        try:
            return self._mid_to_index[mid]
        except KeyError:
            raise MediaSoupClientError(f"no media section with mid '{mid}'") from None

    def disable_media_section(self, mid: str) -> None:
        """Disable the section with the given MID."""
        self._media_sections[self._index_of(mid)].disable()

    def close_media_section(self, mid: str) -> None:
        """Close the section with the given MID (the first one is only disabled)."""
        idx = self._index_of(mid)
        section = self._media_sections[idx]
        # Closing the first m= section would break the bundled transport.
        if mid == self._first_mid:
            section.disable()
        else:
            section.close()
        self._sdp_object["media"][idx] = section.to_object()
        self._regenerate_bundle_mids()

    def get_sdp(self) -> str:
        """Bump the session version and render the SDP text."""
        origin = self._sdp_object["origin"]
        origin["sessionVersion"] = int(origin["sessionVersion"]) + 1
        return _write_sdp(self._sdp_object)

    def _add_media_section(self, section: MediaSection) -> None:
        if not self._first_mid:
            self._first_mid = section.mid
        self._media_sections.append(section)
        self._mid_to_index[section.mid] = len(self._media_sections) - 1
        self._sdp_object["media"].append(section.to_object())
        self._regenerate_bundle_mids()

    def _replace_media_section(self, section: MediaSection, reuse_mid: str) -> None:
        idx = self._index_of(reuse_mid)
        old = self._media_sections[idx]
        self._media_sections[idx] = section
        self._mid_to_index.pop(old.mid, None)
        self._mid_to_index[section.mid] = idx
        self._sdp_object["media"][idx] = section.to_object()
        self._regenerate_bundle_mids()

    def _regenerate_bundle_mids(self) -> None:
        self._sdp_object["groups"][0]["mids"] = " ".join(
            s.mid for s in self._media_sections if not s.closed
        )