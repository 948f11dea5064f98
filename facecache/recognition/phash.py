"""DCT perceptual hash used to fingerprint face regions."""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np


class HashComputeError(ValueError):
    """Raised when a face region cannot be fingerprinted."""


class DescriptorReleasedError(RuntimeError):
    """Raised when a released descriptor is used for comparison."""


class Descriptor:
    """Single-owner handle around a packed perceptual hash buffer.

    ``release`` drops the buffer immediately; it is safe to call more than once.
    """

    __slots__ = ("_bits", "bit_count")

    def __init__(self, bits: np.ndarray, bit_count: Optional[int] = None) -> None:
        self._bits: Optional[np.ndarray] = np.ascontiguousarray(bits, dtype=np.uint8)
        self.bit_count = int(bit_count if bit_count is not None else self._bits.size * 8)

    @property
    def released(self) -> bool:
        return self._bits is None

    @property
    def bits(self) -> np.ndarray:
        bits = self._bits
        if bits is None:
            raise DescriptorReleasedError("Descriptor has been released")
        return bits

    def release(self) -> None:
        self._bits = None

    def to_hex(self) -> str:
        return self.bits.tobytes().hex()

    def __repr__(self) -> str:
        if self._bits is None:
            return "Descriptor(<released>)"
        return f"Descriptor({self.to_hex()})"


class PerceptualHasher:
    """Computes and compares DCT perceptual hashes.

    The region is reduced to luminance before hashing, so a colour crop and its
    grayscale conversion produce the same descriptor.
    """

    def __init__(self, hash_size: int = 8, highfreq_factor: int = 4) -> None:
        if hash_size < 2 or (hash_size * hash_size) % 8:
            raise ValueError(f"hash_size must be >= 2 and yield whole bytes, got {hash_size}")
        self.hash_size = hash_size
        self.sample_size = hash_size * highfreq_factor

    @property
    def bit_count(self) -> int:
        return self.hash_size * self.hash_size

    def compute(self, region: np.ndarray) -> Descriptor:
        if region is None or getattr(region, "size", 0) == 0:
            raise HashComputeError("Cannot hash an empty region")
        try:
            gray = _to_gray(region)
            resized = cv2.resize(
                gray.astype(np.float32),
                (self.sample_size, self.sample_size),
                interpolation=cv2.INTER_AREA,
            )
            dct = cv2.dct(resized)
        except cv2.error as exc:
            raise HashComputeError(f"OpenCV failed to hash region: {exc}") from exc
        dct_low = dct[: self.hash_size, : self.hash_size]
        median = np.median(dct_low)
        packed = np.packbits((dct_low > median).reshape(-1))
        return Descriptor(packed, bit_count=self.bit_count)

    @staticmethod
    def compare(a: Descriptor, b: Descriptor) -> float:
        """Return similarity in [0, 1]; 1.0 means identical hashes."""
        bits_a = a.bits
        bits_b = b.bits
        if bits_a.shape != bits_b.shape:
            raise ValueError("Descriptor sizes do not match")
        distance = int(np.unpackbits(np.bitwise_xor(bits_a, bits_b)).sum())
        return 1.0 - distance / float(a.bit_count)


def _to_gray(region: np.ndarray) -> np.ndarray:
    if region.ndim == 2:
        return region
    if region.ndim == 3 and region.shape[2] == 1:
        return region[:, :, 0]
    if region.ndim == 3 and region.shape[2] == 3:
        return cv2.cvtColor(region, cv2.COLOR_BGR2GRAY)
    if region.ndim == 3 and region.shape[2] == 4:
        return cv2.cvtColor(region, cv2.COLOR_BGRA2GRAY)
    raise HashComputeError(f"Unsupported region shape {region.shape}")
