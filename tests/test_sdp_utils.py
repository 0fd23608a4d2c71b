import pytest

from mscsdp.errors import MediaSoupClientError
from mscsdp.sdp.utils import (
    add_legacy_simulcast,
    apply_codec_parameters,
    extract_dtls_parameters,
    extract_rtp_capabilities,
    format_params,
    get_cname,
    get_rtp_encodings,
    parse_params,
)

FINGERPRINT = (
    "79:14:AB:AB:93:7F:07:E8:91:1A:11:16:36:D0:11:66:"
    "C4:4F:31:A0:74:46:65:58:70:E5:09:95:48:F4:4B:D9"
)


def _audio_video_session():
    return {
        "media": [
            {
                "type": "audio",
                "rtp": [
                    {"payload": 111, "codec": "opus", "rate": 48000, "encoding": "2"},
                    {"payload": 0, "codec": "PCMU", "rate": 8000},
                ],
                "fmtp": [{"payload": 111, "config": "minptime=10;useinbandfec=1"}],
                "rtcpFb": [{"payload": "111", "type": "transport-cc"}],
                "ext": [{"value": 1, "uri": "urn:ietf:params:rtp-hdrext:ssrc-audio-level"}],
            },
            {
                "type": "video",
                "rtp": [
                    {"payload": 96, "codec": "VP8", "rate": 90000},
                    {"payload": 98, "codec": "VP9", "rate": 90000},
                ],
                "fmtp": [{"payload": 98, "config": "profile-id=0"}],
                "rtcpFb": [
                    {"payload": "96", "type": "nack"},
                    {"payload": "96", "type": "nack", "subtype": "pli"},
                ],
                "ext": [{"value": 2, "uri": "urn:ietf:params:rtp-hdrext:toffset"}],
            },
            {
                "type": "audio",
                "rtp": [{"payload": 9, "codec": "G722", "rate": 8000}],
            },
        ]
    }


def test_extract_rtp_capabilities_profile_id_is_number():
    caps = extract_rtp_capabilities(_audio_video_session())
    found = [c for c in caps["codecs"] if "profile-id" in c["parameters"]]
    assert len(found) == 1
    assert found[0]["parameters"]["profile-id"] == 0
    assert isinstance(found[0]["parameters"]["profile-id"], int)


def test_extract_rtp_capabilities_content():
    caps = extract_rtp_capabilities(_audio_video_session())
    assert [c["preferredPayloadType"] for c in caps["codecs"]] == [0, 96, 98, 111]
    opus = caps["codecs"][3]
    assert opus["mimeType"] == "audio/opus"
    assert opus["channels"] == 2
    assert opus["parameters"] == {"minptime": 10, "useinbandfec": 1}
    assert opus["rtcpFeedback"] == [{"type": "transport-cc"}]
    assert caps["codecs"][0]["channels"] == 1
    vp8 = caps["codecs"][1]
    assert vp8["rtcpFeedback"] == [{"type": "nack"}, {"type": "nack", "parameter": "pli"}]
    assert "channels" not in vp8
    assert caps["headerExtensions"] == [
        {"kind": "audio", "uri": "urn:ietf:params:rtp-hdrext:ssrc-audio-level", "preferredId": 1},
        {"kind": "video", "uri": "urn:ietf:params:rtp-hdrext:toffset", "preferredId": 2},
    ]
    assert caps["fecMechanisms"] == []


def test_extract_dtls_parameters():
    session = {
        "fingerprint": {"type": "sha-256", "hash": FINGERPRINT},
        "media": [
            {"type": "audio", "port": 0, "iceUfrag": "a", "setup": "active"},
            {"type": "audio", "port": 9, "iceUfrag": "b", "setup": "actpass"},
        ],
    }
    dtls = extract_dtls_parameters(session)
    assert dtls["role"] == "auto"
    assert len(dtls["fingerprints"]) == 1
    assert dtls["fingerprints"][0] == {"algorithm": "sha-256", "value": FINGERPRINT}


def test_extract_dtls_parameters_prefers_media_fingerprint():
    session = {
        "fingerprint": {"type": "sha-1", "hash": "AA"},
        "media": [
            {
                "port": 9,
                "iceUfrag": "x",
                "setup": "passive",
                "fingerprint": {"type": "sha-256", "hash": "BB"},
            }
        ],
    }
    dtls = extract_dtls_parameters(session)
    assert dtls == {"role": "server", "fingerprints": [{"algorithm": "sha-256", "value": "BB"}]}


def test_get_rtp_encodings_respects_ssrc_order():
    offer = {
        "ssrcs": [
            {"attribute": "cname", "id": 3142507807, "value": "xP/I5Utgvn9wJsho"},
            {"attribute": "msid", "id": 3142507807, "value": "0 audio-track-id"},
            {"attribute": "mslabel", "id": 3142507807, "value": "0"},
            {"attribute": "label", "id": 3142507807, "value": "audio-track-id"},
            {"attribute": "cname", "id": 3142507806, "value": "xP/I5Utgvn9wJsho"},
            {"attribute": "msid", "id": 3142507806, "value": "0 audio-track-id"},
            {"attribute": "mslabel", "id": 3142507806, "value": "0"},
            {"attribute": "label", "id": 3142507806, "value": "audio-track-id"},
        ],
        "type": "audio",
    }
    encodings = get_rtp_encodings(offer)
    assert encodings[0]["ssrc"] == 3142507807
    assert encodings[1]["ssrc"] == 3142507806
    assert len(encodings) == 2


def test_get_rtp_encodings_with_rtx():
    offer = {
        "ssrcs": [
            {"attribute": "cname", "id": 1000, "value": "c"},
            {"attribute": "cname", "id": 2000, "value": "c"},
        ],
        "ssrcGroups": [{"semantics": "FID", "ssrcs": "1000 2000"}],
    }
    assert get_rtp_encodings(offer) == [{"ssrc": 1000, "rtx": {"ssrc": 2000}}]


def test_get_rtp_encodings_without_ssrcs_raises():
    with pytest.raises(MediaSoupClientError):
        get_rtp_encodings({"ssrcs": []})


def _simulcast_media():
    return {
        "ssrcs": [
            {"id": 1000, "attribute": "cname", "value": "cn"},
            {"id": 1000, "attribute": "msid", "value": "stream track"},
            {"id": 2000, "attribute": "cname", "value": "cn"},
            {"id": 2000, "attribute": "msid", "value": "stream track"},
        ],
        "ssrcGroups": [{"semantics": "FID", "ssrcs": "1000 2000"}],
    }


def test_add_legacy_simulcast_with_rtx():
    media = _simulcast_media()
    add_legacy_simulcast(media, 3)
    assert media["ssrcGroups"] == [
        {"semantics": "SIM", "ssrcs": "1000 1001 1002"},
        {"semantics": "FID", "ssrcs": "1000 2000"},
        {"semantics": "FID", "ssrcs": "1001 2001"},
        {"semantics": "FID", "ssrcs": "1002 2002"},
    ]
    assert len(media["ssrcs"]) == 12
    assert media["ssrcs"][0] == {"id": 1000, "attribute": "cname", "value": "cn"}
    assert media["ssrcs"][1] == {"id": 1000, "attribute": "msid", "value": "stream track"}
    assert media["ssrcs"][6] == {"id": 2000, "attribute": "cname", "value": "cn"}
    assert media["ssrcs"][11] == {"id": 2002, "attribute": "msid", "value": "stream track"}


def test_add_legacy_simulcast_single_stream_is_noop():
    media = _simulcast_media()
    add_legacy_simulcast(media, 1)
    assert media == _simulcast_media()


def test_add_legacy_simulcast_without_msid_raises():
    media = {"ssrcs": [{"id": 1, "attribute": "cname", "value": "c"}]}
    with pytest.raises(MediaSoupClientError, match="msid"):
        add_legacy_simulcast(media, 2)


def test_add_legacy_simulcast_without_cname_raises():
    media = {"ssrcs": [{"id": 1, "attribute": "msid", "value": "s t"}]}
    with pytest.raises(MediaSoupClientError, match="CNAME"):
        add_legacy_simulcast(media, 2)


def test_get_cname():
    media = {"ssrcs": [{"id": 1, "value": "none"}, {"id": 1, "attribute": "cname", "value": "abc"}]}
    assert get_cname(media) == "abc"
    assert get_cname({}) == ""
    assert get_cname({"ssrcs": [{"id": 1}]}) == ""


def test_parse_params_types():
    assert parse_params("a=1; b=x ;c=1.5;;d") == {"a": 1, "b": "x", "c": 1.5, "d": ""}
    assert parse_params("") == {}


def test_format_params_sorted_and_round_trip():
    text = format_params({"z": "str", "a": 3, "m": 0.5})
    assert text == "a=3;m=0.5;z=str"
    assert parse_params(text) == {"a": 3, "m": 0.5, "z": "str"}


def test_apply_codec_parameters_updates_existing_fmtp():
    offer = {"codecs": [{"mimeType": "audio/OPUS", "payloadType": 111, "parameters": {"sprop-stereo": True}}]}
    answer = {
        "rtp": [{"payload": 111}],
        "fmtp": [{"payload": 111, "config": "useinbandfec=1;minptime=10"}],
    }
    apply_codec_parameters(offer, answer)
    assert answer["fmtp"] == [{"payload": 111, "config": "minptime=10;stereo=1;useinbandfec=1"}]


def test_apply_codec_parameters_creates_fmtp():
    offer = {"codecs": [{"mimeType": "audio/opus", "payloadType": 111, "parameters": {"sprop-stereo": False}}]}
    answer = {"rtp": [{"payload": 111}]}
    apply_codec_parameters(offer, answer)
    assert answer["fmtp"] == [{"payload": 111, "config": "stereo=0"}]


def test_apply_codec_parameters_ignores_other_codecs():
    offer = {"codecs": [{"mimeType": "video/VP8", "payloadType": 96, "parameters": {}}]}
    answer = {"rtp": [{"payload": 96}], "fmtp": [{"payload": 96, "config": "x=1"}]}
    apply_codec_parameters(offer, answer)
    assert answer["fmtp"] == [{"payload": 96, "config": "x=1"}]