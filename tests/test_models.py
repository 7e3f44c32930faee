"""
Smoke tests for typed models and adapters.
"""

import numpy as np
import pytest

from models.detection import BoundingBox, Candidate, Detection, Direction, Proximity
from models.raw_output import RawOutput


class TestBoundingBox:
    def test_properties(self):
        bbox = BoundingBox(x=100, y=100, width=100, height=50)
        assert bbox.x2 == 200
        assert bbox.y2 == 150
        assert bbox.center == (150.0, 125.0)
        assert bbox.area == 5000

    def test_from_center(self):
        bbox = BoundingBox.from_center(cx=320, cy=500, w=80, h=200)
        assert bbox.as_tuple() == (280, 400, 80, 200)


class TestCandidate:
    def test_box_is_top_left(self):
        c = Candidate(class_id=0, label="person", score=0.9, cx=100, cy=200, w=50, h=80)
        assert c.box == BoundingBox(x=75, y=160, width=50, height=80)


class TestDetection:
    def test_to_dict_uses_enum_values(self):
        det = Detection(
            label="chair", score=0.7, x=1, y=2, width=3, height=4,
            proximity=Proximity.FAR, direction=Direction.LEFT,
        )
        d = det.to_dict()
        assert d["proximity"] == "far"
        assert d["direction"] == "left"
        assert d["label"] == "chair"

    def test_is_immutable(self):
        det = Detection(
            label="chair", score=0.7, x=1, y=2, width=3, height=4,
            proximity=Proximity.FAR, direction=Direction.LEFT,
        )
        with pytest.raises(AttributeError):
            det.score = 0.1


class TestRawOutput:
    def test_float_array(self):
        raw = RawOutput.from_array(np.array([[1.0, 2.0], [3.0, 4.0]]))
        assert raw.count == 4
        assert raw.dtype == "float32"
        np.testing.assert_allclose(raw.values(), [1.0, 2.0, 3.0, 4.0])

    def test_bytes_buffer(self):
        data = np.array([0.5, 1.5, 2.5], dtype=np.float32)
        raw = RawOutput(buffer=data.tobytes(), count=3)
        np.testing.assert_allclose(raw.values(), data)

    def test_uint8_dequantized(self):
        raw = RawOutput.from_array(np.array([0, 128, 255], dtype=np.uint8), scale=0.5, zero_point=128)
        assert raw.is_quantized
        np.testing.assert_allclose(raw.values(), [-64.0, 0.0, 63.5])

    def test_int8_dequantized(self):
        raw = RawOutput.from_array(np.array([-10, 0, 10], dtype=np.int8), scale=0.1)
        np.testing.assert_allclose(raw.values(), [-1.0, 0.0, 1.0], rtol=1e-6)

    def test_quantized_without_scale_rejected(self):
        raw = RawOutput.from_array(np.array([1, 2, 3], dtype=np.uint8))
        with pytest.raises(ValueError):
            raw.values()

    def test_count_mismatch_rejected(self):
        raw = RawOutput(buffer=np.zeros(10, dtype=np.float32), count=12)
        with pytest.raises(ValueError):
            raw.values()

    def test_unsupported_dtype_rejected(self):
        raw = RawOutput.from_array(np.zeros(4, dtype=np.int32))
        with pytest.raises(ValueError):
            raw.values()
