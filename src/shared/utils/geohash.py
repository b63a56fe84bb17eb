"""
Geohash encoding.

Standard base-32 geohash: longitude and latitude ranges are halved
alternately (longitude first), each halving contributing one bit, and every
five bits map to one character of the geohash alphabet.
"""

import math
from typing import Tuple

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
DEFAULT_PRECISION = 9

_DECODE_MAP = {char: index for index, char in enumerate(BASE32)}


def encode(
    latitude: float, longitude: float, precision: int = DEFAULT_PRECISION
) -> str:
    """
    Encode a coordinate pair into a geohash string.

    Args:
        latitude: Latitude in degrees, within [-90, 90]
        longitude: Longitude in degrees, within [-180, 180]
        precision: Number of characters in the result

    Returns:
        The geohash string

    Raises:
        ValueError: If a coordinate is out of range or not a number,
            or the precision is less than 1
    """
    if precision < 1:
        raise ValueError(f"Geohash precision must be positive, got {precision}")
    if math.isnan(latitude) or not -90.0 <= latitude <= 90.0:
        raise ValueError(f"Latitude out of range: {latitude}")
    if math.isnan(longitude) or not -180.0 <= longitude <= 180.0:
        raise ValueError(f"Longitude out of range: {longitude}")

    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    chars = []
    bits = 0
    bit_count = 0
    even = True

    while len(chars) < precision:
        if even:
            mid = (lon_range[0] + lon_range[1]) / 2
            if longitude > mid:
                bits = (bits << 1) | 1
                lon_range[0] = mid
            else:
                bits = bits << 1
                lon_range[1] = mid
        else:
            mid = (lat_range[0] + lat_range[1]) / 2
            if latitude > mid:
                bits = (bits << 1) | 1
                lat_range[0] = mid
            else:
                bits = bits << 1
                lat_range[1] = mid
        even = not even

        bit_count += 1
        if bit_count == 5:
            chars.append(BASE32[bits])
            bits = 0
            bit_count = 0

    return "".join(chars)


def decode(geohash: str) -> Tuple[float, float]:
    """Return the (latitude, longitude) centre of a geohash cell."""
    if not geohash:
        raise ValueError("Cannot decode an empty geohash")

    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    even = True

    for char in geohash.lower():
        if char not in _DECODE_MAP:
            raise ValueError(f"Invalid geohash character: {char!r}")
        value = _DECODE_MAP[char]
        for shift in range(4, -1, -1):
            bit = (value >> shift) & 1
            target = lon_range if even else lat_range
            mid = (target[0] + target[1]) / 2
            if bit:
                target[0] = mid
            else:
                target[1] = mid
            even = not even

    return (
        (lat_range[0] + lat_range[1]) / 2,
        (lon_range[0] + lon_range[1]) / 2,
    )
