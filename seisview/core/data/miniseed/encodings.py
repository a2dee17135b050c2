"""Sample payload decoders.

Steim frames are 64 bytes (16 words). Word 0 of each frame holds sixteen
2-bit nibbles describing every word of the frame; in frame 0, words 1 and 2
hold the forward and reverse integration constants.
"""

from __future__ import annotations

import numpy as np
from loguru import logger

from seisview.core.exceptions import MalformedHeaderError, TruncatedPayloadError, UnsupportedEncodingError
from seisview.core.models.waveform import Encoding

STEIM_FRAME_BYTES = 64
_WORDS_PER_FRAME = 16
_NIBBLE_SHIFTS = np.arange(30, -1, -2, dtype=np.uint32)

_FIXED_WIDTH: dict[Encoding, str] = {
    Encoding.INT16: "i2",
    Encoding.INT32: "i4",
    Encoding.FLOAT32: "f4",
    Encoding.FLOAT64: "f8",
}

# (values per word, bits per value) keyed by Steim2 nibble then dnib
_STEIM2_LAYOUT: dict[tuple[int, int], tuple[int, int]] = {
    (1, 0): (4, 8),
    (1, 1): (4, 8),
    (1, 2): (4, 8),
    (1, 3): (4, 8),
    (2, 1): (1, 30),
    (2, 2): (2, 15),
    (2, 3): (3, 10),
    (3, 0): (5, 6),
    (3, 1): (6, 5),
    (3, 2): (7, 4),
}
_STEIM1_LAYOUT: dict[int, tuple[int, int]] = {1: (4, 8), 2: (2, 16), 3: (1, 32)}


def decode_samples(
    payload: bytes,
    encoding: int,
    sample_count: int,
    word_order: str,
    *,
    offset: int = 0,
) -> np.ndarray:
    """Decode ``sample_count`` samples from ``payload``.

    Raises:
        UnsupportedEncodingError: ``encoding`` is not implemented
        TruncatedPayloadError: the payload holds fewer samples than declared
        MalformedHeaderError: a Steim frame is internally inconsistent
    """
    try:
        kind = Encoding(encoding)
    except ValueError:
        kind = None

    if kind in _FIXED_WIDTH:
        dtype = np.dtype(word_order + _FIXED_WIDTH[kind])
        needed = sample_count * dtype.itemsize
        if needed > len(payload):
            raise TruncatedPayloadError(
                f"{sample_count} {kind.name} samples need {needed} bytes, payload has {len(payload)}",
                offset,
                {"sample_count": sample_count, "available": len(payload) // dtype.itemsize},
            )
        samples = np.frombuffer(payload, dtype=dtype, count=sample_count)
        if kind is Encoding.INT16:
            return samples.astype(np.int32)
        return samples.astype(samples.dtype.newbyteorder("="))
    if kind is Encoding.STEIM1:
        return _decode_steim(payload, sample_count, word_order, offset, steim2=False)
    if kind is Encoding.STEIM2:
        return _decode_steim(payload, sample_count, word_order, offset, steim2=True)

    name = kind.name if kind is not None else str(encoding)
    raise UnsupportedEncodingError(f"encoding {name} is not supported", offset, encoding)


def _unpack(words: np.ndarray, count: int, bits: int) -> np.ndarray:
    """Split each word into ``count`` signed ``bits``-wide values, most significant first."""
    shifts = np.arange(count - 1, -1, -1, dtype=np.uint32) * bits
    mask = np.uint32((1 << bits) - 1) if bits < 32 else np.uint32(0xFFFFFFFF)
    raw = ((words[:, None] >> shifts) & mask).astype(np.int64)
    sign = np.int64(1) << (bits - 1)
    return (raw ^ sign) - sign


def _decode_steim(payload: bytes, sample_count: int, word_order: str, offset: int, *, steim2: bool) -> np.ndarray:
    frame_count = len(payload) // STEIM_FRAME_BYTES
    if frame_count == 0:
        raise TruncatedPayloadError("payload holds no complete Steim frame", offset, {"sample_count": sample_count})

    words = np.frombuffer(
        payload,
        dtype=np.dtype(word_order + "u4"),
        count=frame_count * _WORDS_PER_FRAME,
    ).astype(np.uint32).reshape(frame_count, _WORDS_PER_FRAME)

    nibbles = (words[:, 0:1] >> _NIBBLE_SHIFTS) & np.uint32(3)
    nibbles[:, 0] = 0
    nibbles[0, 1:3] = 0
    flat_words = words.ravel()
    flat_nibbles = nibbles.ravel()

    if steim2:
        dnibs = flat_words >> np.uint32(30)
        layout_keys = list(zip(flat_nibbles.tolist(), dnibs.tolist()))
        layouts = [_STEIM2_LAYOUT.get(key) if key[0] else (0, 0) for key in layout_keys]
        bad = next((i for i, layout in enumerate(layouts) if layout is None), None)
        if bad is not None:
            # words after the declared samples are padding and may hold anything
            if sum(layout[0] for layout in layouts[:bad]) < sample_count:
                raise MalformedHeaderError(
                    f"invalid Steim2 nibble/dnib {layout_keys[bad]} in word {bad}",
                    offset,
                )
            layouts = layouts[:bad]
            flat_words = flat_words[:bad]
    else:
        layouts = [_STEIM1_LAYOUT.get(nibble, (0, 0)) for nibble in flat_nibbles.tolist()]

    counts = np.fromiter((layout[0] for layout in layouts), dtype=np.int64, count=len(layouts))
    bits = np.fromiter((layout[1] for layout in layouts), dtype=np.int64, count=len(layouts))
    starts = np.cumsum(counts) - counts
    differences = np.empty(int(counts.sum()), dtype=np.int64)
    for count, width in {(int(c), int(b)) for c, b in zip(counts, bits) if c}:
        selected = np.flatnonzero((counts == count) & (bits == width))
        positions = starts[selected, None] + np.arange(count)
        differences[positions] = _unpack(flat_words[selected], count, width)

    if len(differences) < sample_count:
        raise TruncatedPayloadError(
            f"Steim payload holds {len(differences)} samples, header declares {sample_count}",
            offset,
            {"sample_count": sample_count, "available": len(differences)},
        )

    constants = words[0].view(np.int32)
    first = np.int64(constants[1])
    last = int(constants[2])
    samples = np.empty(sample_count, dtype=np.int64)
    samples[0] = first
    # differences[0] is relative to the previous record and is ignored
    np.cumsum(differences[1:sample_count], out=samples[1:])
    samples[1:] += first

    if samples[-1] != last:
        logger.warning(
            "Steim reverse integration constant mismatch at offset {offset}: {actual} != {expected}",
            offset=offset,
            actual=int(samples[-1]),
            expected=last,
        )
    return samples.astype(np.int32)
