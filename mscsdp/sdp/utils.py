"""Helpers that read and rewrite parsed SDP session and media objects."""

from __future__ import annotations

from typing import Any

from ..errors import MediaSoupClientError, MediaSoupClientTypeError
from ..utils import is_float, is_int, join, split

_UINT32_MASK = 0xFFFFFFFF


def _convert_value(value: str) -> Any:
    if is_int(value):
        return int(value)
    if is_float(value):
        return float(value)
    return value


def parse_params(text: str) -> dict[str, Any]:
    """Parse an fmtp config string such as ``a=1;b=x`` into a dict.

    Integer and decimal values become numbers, anything else stays a string.
    A parameter without ``=`` maps to an empty string.
    """
    parameters: dict[str, Any] = {}
    for chunk in (text or "").split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue
        key, _, value = chunk.partition("=")
        key = key.strip()
        if not key:
            continue
        parameters[key] = _convert_value(value.strip())
    return parameters


def _format_value(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, float):
        return f"{value:g}"
    if isinstance(value, int):
        return str(value)
    return ""


def format_params(parameters: dict[str, Any]) -> str:
    """Write parameters as an fmtp config string, keys in sorted order."""
    return ";".join(
        f"{key}={_format_value(parameters[key])}" for key in sorted(parameters)
    )


def _codec_payload(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as error:
        raise MediaSoupClientTypeError(f"invalid payload type: {value!r}") from error


def extract_rtp_capabilities(sdp_object: dict[str, Any]) -> dict[str, Any]:
    """Build RTP capabilities from the first audio and first video sections."""
    codecs_by_payload: dict[int, dict[str, Any]] = {}
    header_extensions: list[dict[str, Any]] = []
    seen_kinds: set[str] = set()

    for media in sdp_object.get("media", []):
        kind = media["type"]
        if kind not in ("audio", "video") or kind in seen_kinds:
            continue
        seen_kinds.add(kind)

        for rtp in media.get("rtp", []):
            codec: dict[str, Any] = {
                "kind": kind,
                "mimeType": f"{kind}/{rtp['codec']}",
                "preferredPayloadType": rtp["payload"],
                "clockRate": rtp.get("rate"),
                "parameters": {},
                "rtcpFeedback": [],
            }
            if kind == "audio":
                encoding = rtp.get("encoding")
                if isinstance(encoding, (str, int)) and not isinstance(encoding, bool):
                    codec["channels"] = int(encoding)
                else:
                    codec["channels"] = 1
            codecs_by_payload[_codec_payload(rtp["payload"])] = codec

        for fmtp in media.get("fmtp", []):
            parameters = parse_params(fmtp.get("config", ""))
            codec = codecs_by_payload.get(_codec_payload(fmtp["payload"]))
            if codec is None:
                continue
            profile_id = parameters.get("profile-id")
            if isinstance(profile_id, str):
                parameters["profile-id"] = int(profile_id)
            codec["parameters"] = parameters

        for fb in media.get("rtcpFb", []):
            codec = codecs_by_payload.get(_codec_payload(fb["payload"]))
            if codec is None:
                continue
            feedback: dict[str, Any] = {"type": fb["type"]}
            if "subtype" in fb:
                feedback["parameter"] = fb["subtype"]
            codec["rtcpFeedback"].append(feedback)

        for ext in media.get("ext", []):
            header_extensions.append(
                {"kind": kind, "uri": ext["uri"], "preferredId": ext["value"]}
            )

    return {
        "headerExtensions": header_extensions,
        "codecs": [codecs_by_payload[pt] for pt in sorted(codecs_by_payload)],
        "fecMechanisms": [],
    }


_SETUP_TO_ROLE = {"active": "client", "passive": "server", "actpass": "auto"}


def extract_dtls_parameters(sdp_object: dict[str, Any]) -> dict[str, Any]:
    """Take the DTLS role and fingerprint from the first active media section."""
    media = next(
        (
            m
            for m in sdp_object.get("media", [])
            if "iceUfrag" in m and m.get("port") != 0
        ),
        {},
    )

    if "fingerprint" in media:
        fingerprint = media["fingerprint"]
    else:
        fingerprint = sdp_object.get("fingerprint") or {}

    role = _SETUP_TO_ROLE.get(media.get("setup", ""), "")

    return {
        "role": role,
        "fingerprints": [
            {"algorithm": fingerprint.get("type"), "value": fingerprint.get("hash")}
        ],
    }


def add_legacy_simulcast(offer_media_object: dict[str, Any], num_streams: int) -> None:
    """Rewrite the SSRC lines of a media object for legacy SIM simulcast."""
    if num_streams <= 1:
        return

    ssrc_lines = list(offer_media_object.get("ssrcs") or [])

    msid_line = next(
        (line for line in ssrc_lines if line.get("attribute") == "msid"), None
    )
    if msid_line is None:
        raise MediaSoupClientError("a=ssrc line with msid information not found")

    stream_id, track_id = split(msid_line["value"], " ")[:2]
    first_ssrc = int(msid_line["id"])
    first_rtx_ssrc = 0

    for group in offer_media_object.get("ssrcGroups") or []:
        if not isinstance(group.get("semantics"), str):
            continue
        group_ssrcs = group.get("ssrcs")
        if not isinstance(group_ssrcs, str):
            continue
        parts = split(group_ssrcs, " ")
        if int(parts[0]) == first_ssrc:
            first_rtx_ssrc = int(parts[1])
            break

    cname_line = next(
        (
            line
            for line in ssrc_lines
            if line.get("attribute") == "cname"
            and isinstance(line.get("id"), (int, float))
            and not isinstance(line.get("id"), bool)
        ),
        None,
    )
    if cname_line is None:
        raise MediaSoupClientError("CNAME line not found")

    cname = cname_line["value"]
    ssrcs = [(first_ssrc + i) & _UINT32_MASK for i in range(num_streams)]
    rtx_ssrcs = (
        [(first_rtx_ssrc + i) & _UINT32_MASK for i in range(num_streams)]
        if first_rtx_ssrc
        else []
    )
    msid_value = f"{stream_id} {track_id}"

    groups: list[dict[str, Any]] = [{"semantics": "SIM", "ssrcs": join(ssrcs, " ")}]
    lines: list[dict[str, Any]] = []

    for ssrc in ssrcs:
        lines.append({"id": ssrc, "attribute": "cname", "value": cname})
        lines.append({"id": ssrc, "attribute": "msid", "value": msid_value})

    for ssrc, rtx_ssrc in zip(ssrcs, rtx_ssrcs):
        groups.append({"semantics": "FID", "ssrcs": f"{ssrc} {rtx_ssrc}"})
        lines.append({"id": rtx_ssrc, "attribute": "cname", "value": cname})
        lines.append({"id": rtx_ssrc, "attribute": "msid", "value": msid_value})

    offer_media_object["ssrcGroups"] = groups
    offer_media_object["ssrcs"] = lines


def get_cname(offer_media_object: dict[str, Any]) -> str:
    """Return the value of the first SSRC line carrying an attribute, or ''."""
    for line in offer_media_object.get("ssrcs") or []:
        if isinstance(line.get("attribute"), str):
            return line["value"]
    return ""


def get_rtp_encodings(offer_media_object: dict[str, Any]) -> list[dict[str, Any]]:
    """List the media SSRCs (in SDP order) with their RTX SSRCs if grouped."""
    ssrcs: list[int] = []
    for line in offer_media_object.get("ssrcs") or []:
        ssrc = int(line["id"])
        if not ssrcs or ssrcs[-1] != ssrc:
            ssrcs.append(ssrc)

    if not ssrcs:
        raise MediaSoupClientError("no a=ssrc lines found")

    ssrc_to_rtx: dict[int, int] = {}
    for group in offer_media_object.get("ssrcGroups") or []:
        if group.get("semantics") != "FID":
            continue
        parts = split(group["ssrcs"], " ")
        ssrc, rtx_ssrc = int(parts[0]), int(parts[1])
        ssrcs = [s for s in ssrcs if s != rtx_ssrc]
        ssrc_to_rtx[ssrc] = rtx_ssrc

    encodings: list[dict[str, Any]] = []
    for ssrc in ssrcs:
        encoding: dict[str, Any] = {"ssrc": ssrc}
        if ssrc in ssrc_to_rtx:
            encoding["rtx"] = {"ssrc": ssrc_to_rtx[ssrc]}
        encodings.append(encoding)
    return encodings


def apply_codec_parameters(
    offer_rtp_parameters: dict[str, Any], answer_media_object: dict[str, Any]
) -> None:
    """Copy Opus stereo settings from offered codecs into the answer's fmtp."""
    for codec in offer_rtp_parameters.get("codecs", []):
        mime_type = codec["mimeType"].lower()
        if mime_type != "audio/opus":
            continue

        payload_type = codec["payloadType"]
        if not any(
            rtp.get("payload") == payload_type
            for rtp in answer_media_object.get("rtp", [])
        ):
            continue

        fmtps = answer_media_object.setdefault("fmtp", [])
        fmtp = next((f for f in fmtps if f.get("payload") == payload_type), None)
        if fmtp is None:
            fmtp = {"payload": payload_type, "config": ""}
            fmtps.append(fmtp)

        parameters = parse_params(fmtp.get("config", ""))

        sprop_stereo = codec.get("parameters", {}).get("sprop-stereo")
        if isinstance(sprop_stereo, bool):
            parameters["stereo"] = 1 if sprop_stereo else 0

        fmtp["config"] = format_params(parameters)