"""
IEEE-754 half-precision decoding.

The catalog blob stores every embedding component as a little-endian
binary16 word. Decoding is done from the bit fields directly so that
every word has a defined result:

    exponent == 0    subnormal or signed zero   sign * 2^-14 * (m / 1024)
    exponent == 31   signed infinity or NaN
    otherwise        normal                     sign * 2^(e-15) * (1 + m / 1024)
"""

import math

import numpy as np

SIGN_MASK = 0x8000
EXPONENT_MASK = 0x7C00
MANTISSA_MASK = 0x03FF
EXPONENT_BIAS = 15
MANTISSA_SCALE = 1024.0


def half_to_float(word: int) -> float:
    """
    Decode a single 16-bit half-precision word.

    Scalar reference for decode_half_floats(), which is what the store
    uses. Handy for inspecting individual words from a blob.
    """
    sign = -1.0 if word & SIGN_MASK else 1.0
    exponent = (word & EXPONENT_MASK) >> 10
    mantissa = word & MANTISSA_MASK

    if exponent == 0:
        return sign * 2.0 ** (1 - EXPONENT_BIAS) * (mantissa / MANTISSA_SCALE)
    if exponent == 31:
        return sign * math.inf if mantissa == 0 else math.nan
    return sign * 2.0 ** (exponent - EXPONENT_BIAS) * (1 + mantissa / MANTISSA_SCALE)


def decode_half_floats(buffer) -> np.ndarray:
    """
    Decode a buffer of little-endian half floats into float32 values.

    Vectorized form of half_to_float(); the two agree bit for bit on
    every input word.

    Args:
        buffer: bytes-like object whose length is a multiple of 2.

    Returns:
        1-D float32 array with len(buffer) // 2 elements.

    Raises:
        ValueError: If the buffer has an odd number of bytes.
    """
    nbytes = memoryview(buffer).nbytes
    if nbytes % 2:
        raise ValueError(f"Half-float buffer length {nbytes} is not a multiple of 2")

    words = np.frombuffer(buffer, dtype="<u2").astype(np.int32)

    sign = np.where(words & SIGN_MASK, -1.0, 1.0)
    exponent = (words & EXPONENT_MASK) >> 10
    fraction = (words & MANTISSA_MASK) / MANTISSA_SCALE

    subnormal = sign * np.ldexp(fraction, 1 - EXPONENT_BIAS)
    normal = sign * np.ldexp(1.0 + fraction, exponent - EXPONENT_BIAS)
    special = np.where(fraction == 0, sign * np.inf, np.nan)

    values = np.where(exponent == 0, subnormal,
                      np.where(exponent == 31, special, normal))
    return values.astype(np.float32)
