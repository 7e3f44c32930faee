"""
RawOutput model for a single inference result buffer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np


FLOAT32 = "float32"
UINT8 = "uint8"
INT8 = "int8"

SUPPORTED_DTYPES = (FLOAT32, UINT8, INT8)


@dataclass(frozen=True)
class RawOutput:
    """
    Flat numeric output of one inference call.

    Attributes:
        buffer: The raw elements (numpy array, bytes, or a sequence of numbers).
        count: Declared element count.
        dtype: Element type, one of float32, uint8, int8.
        scale: Dequantization scale for fixed-point buffers.
        zero_point: Dequantization zero point for fixed-point buffers.
    """
    buffer: Any
    count: int
    dtype: str = FLOAT32
    scale: Optional[float] = None
    zero_point: int = 0

    @classmethod
    def from_array(cls, arr: np.ndarray, scale: Optional[float] = None, zero_point: int = 0) -> "RawOutput":
        """Create from a numpy array of any shape; the array is flattened."""
        flat = np.asarray(arr).ravel()
        if flat.dtype.kind == "f":
            flat = flat.astype(np.float32, copy=False)
        return cls(
            buffer=flat,
            count=int(flat.size),
            dtype=str(flat.dtype),
            scale=scale,
            zero_point=zero_point,
        )

    @property
    def is_quantized(self) -> bool:
        return self.dtype in (UINT8, INT8)

    def values(self) -> np.ndarray:
        """
        Return the elements as a flat float32 array.

        Fixed-point buffers are dequantized as (q - zero_point) * scale so
        every downstream decode step sees real-valued scores and boxes.

        Raises:
            ValueError: If the dtype is unsupported, a quantized buffer has no
                scale, or the buffer length disagrees with count.
        """
        if self.dtype not in SUPPORTED_DTYPES:
            raise ValueError(f"Unsupported element type: {self.dtype}")

        if isinstance(self.buffer, (bytes, bytearray, memoryview)):
            raw = np.frombuffer(self.buffer, dtype=self.dtype)
        else:
            raw = np.asarray(self.buffer, dtype=self.dtype).ravel()

        if raw.size != self.count:
            raise ValueError(f"Buffer holds {raw.size} elements, expected {self.count}")

        if not self.is_quantized:
            return raw.astype(np.float32, copy=False)

        if self.scale is None:
            raise ValueError(f"Quantized {self.dtype} buffer requires a scale")
        return (raw.astype(np.float32) - float(self.zero_point)) * np.float32(self.scale)
