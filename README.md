# mscsdp

Build the remote side of a WebRTC session description for a client that
talks to a selective forwarding unit, and pull RTP and DTLS details out of
parsed SDP objects.

SDP is handled as plain Python dictionaries and lists, in the shape a
typical SDP parser produces (`media`, `rtp`, `fmtp`, `rtcpFb`, `ext`,
`ssrcs`, `ssrcGroups`, `candidates`, ...). The package has no runtime
dependencies.

## Install

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Modules

### `mscsdp.errors`

`MediaSoupClientError` (a `RuntimeError`) and its subclasses
`MediaSoupClientTypeError`, `MediaSoupClientUnsupportedError` and
`MediaSoupClientInvalidStateError`. Every error the package raises derives
from `MediaSoupClientError`.

### `mscsdp.utils`

- `split(text, delimiter)` splits a string, dropping one trailing empty
  token (so `""` gives `[]` and `"a b "` gives `["a", "b"]`).
- `join(values, delimiter)` joins the string forms of any values.
- `is_int(text)` / `to_int(text)`: whole-string signed 64-bit decimal
  integers; `to_int` narrows to 32 bits and returns `0` for anything else.
- `is_float(text)` / `to_float(text)`: whole-string decimal numbers;
  `to_float` returns `0.0` for anything else.
- `get_random_integer(minimum, maximum)` returns an integer in
  `[minimum, maximum)` and raises `ValueError` if the range is empty.
- `get_random_string(length)` returns a string of ASCII letters and digits.

### `mscsdp.sdp.utils`

- `parse_params(text)` turns an `a=fmtp` config such as
  `"minptime=10;useinbandfec=1"` into a dict, converting numbers.
- `format_params(parameters)` writes a dict back as a config string, keys
  in sorted order.
- `extract_rtp_capabilities(sdp_object)` builds `codecs` (ordered by
  payload type), `headerExtensions` and `fecMechanisms` from the first
  audio and first video sections; a string `profile-id` becomes an int.
- `extract_dtls_parameters(sdp_object)` reads the DTLS role (`client`,
  `server` or `auto`, from `a=setup`) and fingerprint of the first active
  media section, falling back to the session fingerprint.
- `add_legacy_simulcast(offer_media_object, num_streams)` rewrites the SSRC
  lines and groups for `SIM` simulcast (plus `FID` groups when RTX is used).
  Raises `MediaSoupClientError` if the msid or CNAME line is missing.
- `get_cname(offer_media_object)` returns the value of the first SSRC line
  carrying an attribute, or `""`.
- `get_rtp_encodings(offer_media_object)` lists the media SSRCs in SDP
  order, each with its RTX SSRC when an `FID` group pairs them. Raises
  `MediaSoupClientError` when there are no SSRC lines.
- `apply_codec_parameters(offer_rtp_parameters, answer_media_object)`
  copies the Opus `sprop-stereo` setting into the answer's `stereo` fmtp
  parameter.

### `mscsdp.sdp.media_section`

`MediaSection` is the abstract base for one `m=` section. It exposes
`mid`, `closed`, `to_object()` (an independent copy of the media object),
`set_ice_parameters()`, `disable()`, `close()` and `set_dtls_role()`.

- `AnswerMediaSection` answers a locally offered section: it applies codec
  options (`opusStereo`, `opusFec`, `opusDtx`, `opusCbr`,
  `opusMaxPlaybackRate`, `opusMaxAverageBitrate`, `opusPtime`,
  `videoGoogleStartBitrate`, `videoGoogleMaxBitrate`,
  `videoGoogleMinBitrate`), keeps only header extensions present in the
  offer, and mirrors simulcast rids as `recv`.
- `OfferMediaSection` offers remote media to receive (or an `application`
  section for data channels) with `a=ssrc` and `FID` lines; its setup is
  always `actpass`.

### `mscsdp.sdp.remote_sdp`

`RemoteSdp(ice_parameters, ice_candidates, dtls_parameters, sctp_parameters)`
keeps the media sections, the BUNDLE group and the session version. It
raises `MediaSoupClientTypeError` if `dtls_parameters` has no fingerprints
(the last one is used).

- `send(...)` / `send_sctp_association(...)` add answer sections;
  `send` reuses a closed slot when given a `reuse_mid`.
- `receive(...)` / `recv_sctp_association()` add offer sections; `receive`
  recycles the first closed section if there is one.
- `get_next_media_section_idx()` returns a `MediaSectionIdx` with `idx` and
  `reuse_mid`.
- `update_ice_parameters()`, `update_dtls_role()`, `disable_media_section()`,
  `close_media_section()` (the first section is only disabled, so the
  bundled transport survives). Unknown MIDs raise `MediaSoupClientError`.
- `get_sdp()` increments the session version and returns the SDP text.
- `sdp_object` returns a copy of the session object.

## Example

```python
from mscsdp.sdp.remote_sdp import RemoteSdp

remote = RemoteSdp(
    ice_parameters={"usernameFragment": "ufrag", "password": "password"},
    ice_candidates=[
        {"foundation": "udpcandidate", "ip": "192.0.2.1", "port": 40000,
         "priority": 1078862079, "protocol": "udp", "type": "host"},
    ],
    dtls_parameters={
        "role": "auto",
        "fingerprints": [{"algorithm": "sha-256", "value": "AA:BB"}],
    },
    sctp_parameters=None,
)

offer_rtp_parameters = {
    "codecs": [{
        "mimeType": "audio/opus", "payloadType": 100, "clockRate": 48000,
        "channels": 2, "parameters": {"useinbandfec": 1}, "rtcpFeedback": [],
    }],
    "headerExtensions": [
        {"uri": "urn:ietf:params:rtp-hdrext:ssrc-audio-level", "id": 1},
    ],
    "encodings": [{"ssrc": 1111}],
    "rtcp": {"cname": "cname"},
}

print(remote.get_next_media_section_idx())  # MediaSectionIdx(idx=0, reuse_mid='')
remote.receive("0", "audio", offer_rtp_parameters, "stream", "track")
print(remote.get_sdp())
```

## What it does not do

The package does not parse SDP text: the helpers in `mscsdp.sdp.utils`
take objects that were already parsed, and only `a=fmtp` config strings
are parsed here (`parse_params`). `RemoteSdp.get_sdp()` writes SDP text
from the objects it builds. There is no peer connection, media capture,
transport, producer/consumer handling or network code, and no command-line
tool.