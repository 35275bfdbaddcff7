# rtpinterceptor

Composable interceptors for RTP and RTCP streams, and the pieces that
congestion control and forward error correction are built from. The package
has no dependencies beyond the standard library.

Times throughout are integer nanoseconds. Where an acknowledgment's
`arrival` is `0`, the packet was not reported as received.

## What is in the package

| Module | Contents |
| --- | --- |
| `rtpinterceptor.interceptor` | `Interceptor` (abstract), `NoOp`, `Chain`, and the `RTPWriterFunc`, `RTPReaderFunc`, `RTCPWriterFunc` and `RTCPReaderFunc` adapters |
| `rtpinterceptor.rtp` | `Header`, `Packet`, `Extension` and `TransportCCExtension`, each with `marshal` / `unmarshal` |
| `rtpinterceptor.rtcp` | `TransportLayerCC`, `CCFeedbackReport`, `SenderReport` and `RawPacket`, plus module-level `marshal(packets)` and `unmarshal(data)` for compound packets |
| `rtpinterceptor.attributes` | `Attributes`, a dict that caches parsed RTP headers and RTCP packets |
| `rtpinterceptor.errors` | `MultiError` and `flatten_errs` |
| `rtpinterceptor.ntp` | `to_ntp` and `to_time` |
| `rtpinterceptor.sequencenumber` | `is_newer` and `Unwrapper` |
| `rtpinterceptor.acknowledgment` | `Acknowledgment` |
| `rtpinterceptor.feedback` | `FeedbackAdapter` |
| `rtpinterceptor.flexfec` | `BitArray`, `MediaPacketIterator`, `ProtectionCoverage`, `FlexEncoder20`, `FlexEncoder03`, `FecInterceptor` |
| `rtpinterceptor.gcc` | building blocks of Google Congestion Control, and two pacers |

## Interceptor chains

The `Interceptor` base declares seven methods:

- `bind_rtcp_reader`
- `bind_rtcp_writer`
- `bind_local_stream`
- `unbind_local_stream`
- `bind_remote_stream`
- `unbind_remote_stream`
- `close`

`NoOp` implements all seven as pass-throughs. Subclass it and override only
the methods you need.

`Chain` binds its interceptors in list order. `Chain.close()` closes every
interceptor, even if some fail. If any of them raised, it then raises a
`MultiError` that holds those errors.

```python
from rtpinterceptor.interceptor import Chain, NoOp, RTPWriterFunc
from rtpinterceptor.rtp import Header

sent = []

def send(header, payload, attributes):
    sent.append((header, payload))
    return len(payload)

chain = Chain([NoOp(), NoOp()])
writer = chain.bind_local_stream(info, RTPWriterFunc(send))
writer.write(Header(version=2, ssrc=5000, sequence_number=1), b"\x00\x01\x02", None)
```

`info` describes the stream. The interceptors in this package read only its
`ssrc` and `payload_type` attributes, so any object that has those two
attributes will do.

## Packets and attributes

```python
from rtpinterceptor.attributes import Attributes
from rtpinterceptor.rtp import Header

raw = Header(version=2, ssrc=1, sequence_number=7).marshal()
attributes = Attributes()
header = attributes.get_rtp_header(raw)          # parsed once, then cached
assert attributes.get_rtp_header(b"") is header
```

`Attributes.get_rtcp_packets(raw)` works the same way for RTCP packets.

If a cached value has the wrong type, `InvalidTypeError` is raised. Bytes that
cannot be parsed raise `ValueError`.

## Feedback adaptation

`FeedbackAdapter` keeps the 250 most recently sent packets. When feedback
arrives, it matches the feedback to those packets and returns
`Acknowledgment` records.

How `on_sent` records a packet depends on the attributes passed to it:

- **TWCC extension id present.** If `attributes` holds an extension id under
  `TWCC_EXTENSION_ATTRIBUTES_KEY`, the packet is recorded by its
  transport-wide sequence number. If the header lacks that extension,
  `MissingTWCCExtensionError` is raised.
- **No extension id.** Otherwise the packet is recorded by SSRC and RTP
  sequence number. These records are the ones RFC 8888 feedback is matched
  against.

Feedback is handed to one of two methods, according to its type:

- `on_transport_cc_feedback` takes TWCC feedback. It raises
  `InvalidFeedbackError` when the feedback reports more received packets than
  it carries deltas for.
- `on_rfc8888_feedback` takes RFC 8888 feedback.

```python
from rtpinterceptor.feedback import FeedbackAdapter, TWCC_EXTENSION_ATTRIBUTES_KEY
from rtpinterceptor.rtp import Header, TransportCCExtension

adapter = FeedbackAdapter()
header = Header()
header.set_extension(1, TransportCCExtension(transport_sequence=0).marshal())
adapter.on_sent(0, header, 1200, {TWCC_EXTENSION_ATTRIBUTES_KEY: 1})
acks = adapter.on_transport_cc_feedback(0, twcc_feedback)
```

## Forward error correction

Two encoders produce FlexFEC repair packets for an in-order, complete batch
of media packets:

- `FlexEncoder20` uses the RFC 8627 header layout.
- `FlexEncoder03` uses the draft-03 layout.

Media packet *i* is protected by FEC packet *i* mod *N*. FEC sequence
numbers start at 1000.

```python
from rtpinterceptor.flexfec.encoder03 import FlexEncoder03

encoder = FlexEncoder03(payload_type=118, ssrc=0x1234)
fec_packets = encoder.encode_fec(media_packets, 2)
```

`encode_fec` returns an empty list in either of these cases:

- the batch is empty;
- the batch holds more than 110 packets.

`FecInterceptorFactory().new_interceptor("")` returns a `FecInterceptor`. Its
`bind_local_stream` wraps a writer so that after every five media packets,
two draft-03 FEC packets are written through the same writer.

## Congestion-control building blocks

The `rtpinterceptor.gcc` subpackage has these parts:

- `ArrivalGroup` and `ArrivalGroupAccumulator` group acknowledgments into
  bursts.
- `SlopeEstimator` measures delay variation between groups.
- `Kalman` filters those measurements.
- `AdaptiveThreshold` and `OveruseDetector` turn the estimates into
  over/under/normal `Usage` signals.
- `RateController` drives a target bitrate through `State` transitions.
- `LossBasedBandwidthEstimator` adjusts a bitrate from reported losses.

These parts can be connected by hand:

```python
import time

from rtpinterceptor.gcc.accumulator import ArrivalGroupAccumulator
from rtpinterceptor.gcc.adaptive_threshold import AdaptiveThreshold
from rtpinterceptor.gcc.kalman import Kalman
from rtpinterceptor.gcc.overuse_detector import OveruseDetector
from rtpinterceptor.gcc.rate_controller import RateController
from rtpinterceptor.gcc.slope_estimator import SlopeEstimator

controller = RateController(time.time_ns, 1_000_000, 5_000, 50_000_000,
                            lambda stats: print(stats.state, stats.target_bitrate))
controller.on_received_rate(1_000_000)
detector = OveruseDetector(AdaptiveThreshold(), 10_000_000, controller.on_delay_stats)
slope = SlopeEstimator(Kalman().update_estimate, detector.on_delay_stats)
ArrivalGroupAccumulator().run([acks], slope.on_arrival_group)
```

Two pacers forward packets to the writer registered for each SSRC:

- `NoOpPacer` forwards every packet at once. For an SSRC that was never
  added, it raises `UnknownStreamError`.
- `LeakyBucketPacer` queues packets and releases them from a background
  thread every 5 ms. It stays within a budget of 1.5 times the target set by
  `set_target_bitrate`. Call `close()` to stop the thread.

## What the package does not do

- **No assembled bandwidth estimator.** The package provides the
  delay-based and loss-based parts, but nothing that combines them into one
  send-side estimator. It has no received-rate calculator to feed
  `RateController.on_received_rate`; you supply that rate yourself.
- **No congestion-control interceptor.** No interceptor plugs an estimator
  into a `Chain`.
- **No transport.** The package does no networking. It does not open sockets,
  negotiate sessions or send anything on its own. The writers and readers you
  bind decide where packets go.

## Running the tests

```
pip install .[test]
pytest
```