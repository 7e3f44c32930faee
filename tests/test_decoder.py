"""
Tests for model output decoding and layout dispatch.
"""

import numpy as np
import pytest

from detection.gate import ConfidenceGate
from inference.decoder import (
    DenseAnchorDecoder,
    EndToEndDecoder,
    TensorDecoder,
    is_dense_anchor,
    resolve_label,
)
from models.config import DecoderConfig
from models.raw_output import RawOutput


@pytest.fixture
def gate():
    return ConfidenceGate(conf_threshold=0.45, priority_threshold=0.30, priority_labels=["bottle"])


class TestResolveLabel:
    def test_in_range(self, class_names):
        assert resolve_label(class_names, 0) == "person"
        assert resolve_label(class_names, 39) == "bottle"

    def test_out_of_range_is_unknown(self, class_names):
        assert resolve_label(class_names, 80) == "unknown"
        assert resolve_label(class_names, -1) == "unknown"


class TestLayoutPredicate:
    def test_boundary(self):
        assert is_dense_anchor(4999) is False
        assert is_dense_anchor(5000) is True

    def test_configurable_threshold(self):
        assert is_dense_anchor(900, min_elements=800) is True


class TestEndToEndDecoding:
    def test_two_rows(self, class_names, gate, end_to_end_buffer):
        """Two rows decode to two candidates with top-left boxes and labels."""
        buf = end_to_end_buffer([
            [100, 200, 50, 80, 0.9, 0],
            [300, 300, 40, 40, 0.8, 39],
        ])
        decoder = TensorDecoder(class_names, gate)

        candidates = decoder.decode(RawOutput.from_array(buf))

        assert len(candidates) == 2
        person, bottle = candidates
        assert person.label == "person"
        assert person.box.x == pytest.approx(75)
        assert person.box.y == pytest.approx(160)
        assert bottle.label == "bottle"
        assert bottle.box.x == pytest.approx(280)
        assert bottle.box.y == pytest.approx(280)
        assert bottle.score == pytest.approx(0.8)

    def test_out_of_vocabulary_class(self, class_names, gate, end_to_end_buffer):
        buf = end_to_end_buffer([[100, 100, 10, 10, 0.9, 95]])
        candidates = TensorDecoder(class_names, gate).decode(RawOutput.from_array(buf))
        assert [c.label for c in candidates] == ["unknown"]
        assert candidates[0].class_id == 95

    @pytest.mark.parametrize("bad_class", [np.inf, -np.inf, np.nan])
    def test_non_finite_class_is_unknown(self, class_names, gate, end_to_end_buffer, bad_class):
        """A corrupt class index costs only its own row, not the whole frame."""
        buf = end_to_end_buffer([
            [100, 100, 50, 50, 0.9, 0],
            [300, 300, 50, 50, 0.9, bad_class],
        ])
        candidates = TensorDecoder(class_names, gate).decode(RawOutput.from_array(buf))
        assert [(c.label, c.class_id) for c in candidates] == [("person", 0), ("unknown", -1)]

    def test_class_index_rounded(self, class_names, gate, end_to_end_buffer):
        buf = end_to_end_buffer([[100, 100, 10, 10, 0.9, 2.0001]])
        candidates = TensorDecoder(class_names, gate).decode(RawOutput.from_array(buf))
        assert candidates[0].label == "car"

    def test_low_scores_gated(self, class_names, gate, end_to_end_buffer):
        buf = end_to_end_buffer([
            [100, 100, 10, 10, 0.40, 0],  # person below 0.45
            [100, 100, 10, 10, 0.40, 39],  # bottle above priority 0.30
        ])
        candidates = TensorDecoder(class_names, gate).decode(RawOutput.from_array(buf))
        assert [c.label for c in candidates] == ["bottle"]

    def test_score_equal_to_threshold_excluded(self, class_names, end_to_end_buffer):
        gate = ConfidenceGate(conf_threshold=0.5)
        buf = end_to_end_buffer([
            [100, 100, 10, 10, 0.5, 0],
            [100, 100, 10, 10, 0.5001, 0],
        ])
        candidates = TensorDecoder(class_names, gate).decode(RawOutput.from_array(buf))
        assert len(candidates) == 1
        assert candidates[0].score > 0.5

    def test_trailing_partial_row_ignored(self, class_names, gate):
        buf = np.zeros(6 * 2 + 3, dtype=np.float32)
        buf[4] = 0.9
        buf[10] = 0.9
        candidates = EndToEndDecoder(class_names, gate).decode(buf)
        assert len(candidates) == 2

    def test_row_width_too_small_rejected(self, class_names, gate):
        with pytest.raises(ValueError):
            EndToEndDecoder(class_names, gate, row_width=5)


class TestDenseAnchorDecoding:
    def test_argmax_class(self, class_names, gate, dense_anchor_buffer):
        buf = dense_anchor_buffer(80, 100, {
            3: (320, 320, 100, 200, 0, 0.8),
            7: (100, 100, 20, 20, 56, 0.6),
        })
        candidates = TensorDecoder(class_names, gate).decode(RawOutput.from_array(buf))

        assert len(candidates) == 2
        by_label = {c.label: c for c in candidates}
        assert by_label["person"].score == pytest.approx(0.8)
        assert by_label["person"].cx == pytest.approx(320)
        assert by_label["person"].h == pytest.approx(200)
        assert by_label["chair"].score == pytest.approx(0.6)

    def test_background_anchors_dropped(self, class_names, gate, dense_anchor_buffer):
        buf = dense_anchor_buffer(80, 100, {})
        assert TensorDecoder(class_names, gate).decode(RawOutput.from_array(buf)) == []

    def test_row_count_mismatch_returns_empty(self, class_names, gate):
        """A buffer that is not (4 + C) x A yields no candidates instead of raising."""
        buf = np.full(84 * 100 + 1, 0.9, dtype=np.float32)
        decoder = TensorDecoder(class_names, gate)
        assert decoder.decode(RawOutput.from_array(buf)) == []

    def test_box_features_below_four_rejected(self, class_names, gate):
        with pytest.raises(ValueError):
            DenseAnchorDecoder(class_names, gate, box_features=3)

    def test_empty_vocabulary_rejected(self, gate):
        with pytest.raises(ValueError):
            DenseAnchorDecoder([], gate)


class TestDispatchBoundary:
    def test_4999_elements_uses_end_to_end(self, small_vocab, gate):
        buf = np.zeros(4999, dtype=np.float32)
        rows = buf[: (4999 // 6) * 6].reshape(-1, 6)
        rows[:, 2:4] = 10.0
        rows[:, 4] = 0.9
        decoder = TensorDecoder(small_vocab, gate)

        assert decoder.select_decoder(4999) is decoder.end_to_end
        candidates = decoder.decode(RawOutput.from_array(buf))
        assert len(candidates) == 4999 // 6

    def test_5000_elements_uses_dense_anchor(self, small_vocab, gate, dense_anchor_buffer):
        n_anchors = 5000 // (4 + len(small_vocab))
        buf = dense_anchor_buffer(
            len(small_vocab),
            n_anchors,
            {i: (10.0 * i, 10, 5, 5, 0, 0.9) for i in range(n_anchors)},
        )
        assert buf.size == 5000
        decoder = TensorDecoder(small_vocab, gate)

        assert decoder.select_decoder(5000) is decoder.dense_anchor
        candidates = decoder.decode(RawOutput.from_array(buf))
        assert len(candidates) == n_anchors

    def test_5000_elements_not_divisible_by_features(self, class_names, gate):
        buf = np.full(5000, 0.9, dtype=np.float32)
        assert TensorDecoder(class_names, gate).decode(RawOutput.from_array(buf)) == []


class TestMalformedBuffers:
    def test_quantized_without_scale(self, class_names, gate):
        raw = RawOutput.from_array(np.zeros(12, dtype=np.uint8))
        assert TensorDecoder(class_names, gate).decode(raw) == []

    def test_declared_count_mismatch(self, class_names, gate):
        raw = RawOutput(buffer=np.zeros(12, dtype=np.float32), count=18)
        assert TensorDecoder(class_names, gate).decode(raw) == []

    def test_empty_buffer(self, class_names, gate):
        raw = RawOutput.from_array(np.zeros(0, dtype=np.float32))
        assert TensorDecoder(class_names, gate).decode(raw) == []


class TestQuantizedDecoding:
    def test_uint8_end_to_end(self, class_names, gate):
        # scale 0.01: box values are normalized, score 0.9 -> q=90
        q = np.array([50, 50, 20, 20, 90, 0], dtype=np.uint8)
        raw = RawOutput.from_array(q, scale=0.01)
        candidates = TensorDecoder(class_names, gate).decode(raw)
        assert len(candidates) == 1
        assert candidates[0].label == "person"
        assert candidates[0].score == pytest.approx(0.9, rel=1e-5)
        assert candidates[0].cx == pytest.approx(0.5, rel=1e-5)


class TestFromConfig:
    def test_threshold_from_config(self, small_vocab, gate):
        cfg = DecoderConfig(dense_anchor_min_elements=100, class_names=small_vocab)
        decoder = TensorDecoder.from_config(cfg, gate)
        assert decoder.select_decoder(100) is decoder.dense_anchor
        assert decoder.select_decoder(99) is decoder.end_to_end
