"""Geohash encoding, decoding, bounds recovery and compass neighbors.

A geohash is a base32 string naming a rectangular cell on the
latitude/longitude grid. Each character carries 5 bits; bits alternate
between longitude and latitude (longitude first) and every bit halves the
range of its axis. Longer strings name smaller cells.

Geohash Precision Reference:
    Length  Preset       Uncertainty
    1       VERY_LOW     ±2,500km
    3       LOW          ±78km
    5       MEDIUM       ±2.4km
    7       HIGH         ±76m
    9       VERY_HIGH    ±2.4m

Examples:
    >>> encode(57.64911, 10.40744)
    'u4pru'
    >>> decode("u4pruyd")
    Coordinate(latitude=57.649..., longitude=10.407...)
    >>> neighbor("u4pru", CompassDirection.N)
    'u4r2h'
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List, NamedTuple, Optional, Sequence, Tuple

_LOGGER = logging.getLogger(__name__)

# Constants -------------------------------------------------------------------
BASE32_ALPHABET = "0123456789bcdefghjkmnpqrstuvwxyz"
BASE32_DECODE_MAP = {char: index for index, char in enumerate(BASE32_ALPHABET)}
BITS_PER_CHAR = 5

LAT_RANGE = (-90.0, 90.0)
LON_RANGE = (-180.0, 180.0)
LON_SPAN = 360.0


class Precision(IntEnum):
    """Named hash lengths. Any positive ``int`` is accepted in their place."""

    VERY_LOW = 1
    LOW = 3
    MEDIUM = 5
    HIGH = 7
    VERY_HIGH = 9


DEFAULT_PRECISION = Precision.MEDIUM


class CompassDirection(Enum):
    """The eight neighbor directions.

    Each value is the ``(latitude, longitude)`` multiplier applied to the
    cell's own height and width to reach the neighbor's center.
    """

    N = (1, 0)
    NE = (1, 1)
    E = (0, 1)
    SE = (-1, 1)
    S = (-1, 0)
    SW = (-1, -1)
    W = (0, -1)
    NW = (1, -1)

    @property
    def multiplier(self) -> Tuple[int, int]:
        return self.value


# Clockwise from north. Part of the public contract of neighbors().
CLOCKWISE_DIRECTIONS = (
    CompassDirection.N,
    CompassDirection.NE,
    CompassDirection.E,
    CompassDirection.SE,
    CompassDirection.S,
    CompassDirection.SW,
    CompassDirection.W,
    CompassDirection.NW,
)

# Type Aliases ----------------------------------------------------------------
LonLat = Tuple[float, float]
BBox = Tuple[float, float, float, float]  # (west, south, east, north)
Polygon = List[LonLat]


# Custom Exceptions -----------------------------------------------------------
class GeohashError(Exception):
    """Base exception for geohash operations."""


class EmptyInputError(GeohashError):
    """Raised when the geohash string is empty."""


class InvalidCharactersError(GeohashError):
    """Raised when the geohash contains a symbol outside the base32 alphabet.

    Valid symbols are the digits and the lowercase letters except
    ``a``, ``i``, ``l`` and ``o``.
    """


class InvalidCoordinatesError(GeohashError):
    """Raised when latitude or longitude is out of its valid range."""


class InvalidPrecisionError(InvalidCoordinatesError):
    """Raised when the requested precision is not a positive integer."""


# Data Types ------------------------------------------------------------------
class Coordinate(NamedTuple):
    """A (latitude, longitude) pair in degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class BoundingBox:
    """The rectangular cell denoted by a geohash.

    Attributes:
        lower: South-west corner (minimum latitude, minimum longitude)
        upper: North-east corner (maximum latitude, maximum longitude)
    """

    lower: Coordinate
    upper: Coordinate

    @property
    def center(self) -> Coordinate:
        """Midpoint of the cell; this is what decode() returns."""
        return Coordinate(
            latitude=(self.upper.latitude + self.lower.latitude) / 2,
            longitude=(self.upper.longitude + self.lower.longitude) / 2,
        )

    @property
    def delta(self) -> Coordinate:
        """Full cell height and width in degrees."""
        return Coordinate(
            latitude=self.upper.latitude - self.lower.latitude,
            longitude=self.upper.longitude - self.lower.longitude,
        )

    @property
    def lat_err(self) -> float:
        """Half-height of the cell in latitude degrees."""
        return self.delta.latitude / 2

    @property
    def lon_err(self) -> float:
        """Half-width of the cell in longitude degrees."""
        return self.delta.longitude / 2

    def contains(self, latitude: float, longitude: float) -> bool:
        """Return True if the point lies inside the closed cell."""
        return (
            self.lower.latitude <= latitude <= self.upper.latitude
            and self.lower.longitude <= longitude <= self.upper.longitude
        )

    def to_bbox(self) -> BBox:
        """Return the cell as (west, south, east, north).

        This is the ordering most GIS libraries expect.
        """
        return (
            self.lower.longitude,
            self.lower.latitude,
            self.upper.longitude,
            self.upper.latitude,
        )

    def to_polygon(self, closed: bool = True) -> Polygon:
        """Return the cell corners as (lon, lat) pairs.

        Order is counter-clockwise from the SW corner:
        SW -> SE -> NE -> NW [-> SW if closed], which is a valid GeoJSON
        linear ring when ``closed`` is True.
        """
        west, south, east, north = self.to_bbox()
        corners = [(west, south), (east, south), (east, north), (west, north)]
        if closed:
            corners.append((west, south))
        return corners


# Alphabet --------------------------------------------------------------------
def index_of(symbol: str) -> Optional[int]:
    """Return the 5-bit value of a base32 symbol, or None if it is not one."""
    return BASE32_DECODE_MAP.get(symbol)


def symbol_of(index: int) -> str:
    """Return the base32 symbol for a value in 0..31."""
    if not 0 <= index < len(BASE32_ALPHABET):
        raise ValueError(f"Symbol index must be in 0..31, got {index}")
    return BASE32_ALPHABET[index]


# Helper Functions ------------------------------------------------------------
def _geohash_to_bits(geohash: str) -> List[int]:
    """Expand a geohash into its interleaved bit sequence.

    Raises:
        EmptyInputError: If geohash is empty
        InvalidCharactersError: At the first symbol outside the alphabet
    """
    if not geohash:
        raise EmptyInputError("Geohash must contain at least one character")

    bits: List[int] = []
    for position, char in enumerate(geohash):
        value = index_of(char)
        if value is None:
            raise InvalidCharactersError(
                f"Invalid geohash character {char!r} at position {position}. "
                f"Valid characters: {BASE32_ALPHABET}"
            )
        for shift in range(BITS_PER_CHAR - 1, -1, -1):
            bits.append((value >> shift) & 1)
    return bits


def _bits_to_geohash(bits: Sequence[int]) -> str:
    chars: List[str] = []
    index = 0
    for position, bit in enumerate(bits, start=1):
        index = (index << 1) | bit
        if position % BITS_PER_CHAR == 0:
            chars.append(symbol_of(index))
            index = 0
    return "".join(chars)


def _narrow(bits: Sequence[int], initial_range: Tuple[float, float]) -> Tuple[float, float]:
    """Bisect a range once per bit: 1 keeps the upper half, 0 the lower."""
    low, high = initial_range
    for bit in bits:
        mid = (low + high) / 2
        if bit:
            low = mid
        else:
            high = mid
    return low, high


def _resolve_precision(precision: int) -> int:
    # bool is an int subclass but never a meaningful length
    if isinstance(precision, bool) or not isinstance(precision, int):
        raise InvalidPrecisionError(
            f"Precision must be a positive integer, got {precision!r}"
        )
    if precision <= 0:
        raise InvalidPrecisionError(f"Precision must be positive, got {precision}")
    return int(precision)


def _wrap_longitude(lon: float) -> float:
    """Bring a longitude that crossed the antimeridian back into range.

    Values already within [-180, 180] are returned untouched.
    """
    if LON_RANGE[0] <= lon <= LON_RANGE[1]:
        return lon
    return ((lon - LON_RANGE[0]) % LON_SPAN) + LON_RANGE[0]


def _clamp_latitude(lat: float) -> float:
    return max(LAT_RANGE[0], min(lat, LAT_RANGE[1]))


def _neighbor_of_box(box: BoundingBox, direction: CompassDirection, precision: int) -> str:
    center = box.center
    delta = box.delta
    lat_sign, lon_sign = direction.multiplier

    target_lat = center.latitude + delta.latitude * lat_sign
    target_lon = center.longitude + delta.longitude * lon_sign

    lat = _clamp_latitude(target_lat)
    lon = _wrap_longitude(target_lon)
    if lat != target_lat or lon != target_lon:
        _LOGGER.debug(
            "Neighbor %s of %s adjusted from (%s, %s) to (%s, %s)",
            direction.name,
            box.to_bbox(),
            target_lat,
            target_lon,
            lat,
            lon,
        )

    return encode(lat, lon, precision=precision)


# Public API ------------------------------------------------------------------
def bounds(geohash: str) -> BoundingBox:
    """Recover the bounding box a geohash denotes.

    Args:
        geohash: Geohash string to decode

    Returns:
        BoundingBox with the south-west and north-east corners

    Raises:
        EmptyInputError: If geohash is empty
        InvalidCharactersError: If geohash contains invalid characters

    Examples:
        >>> box = bounds("u4pruydqq")
        >>> box.lower
        Coordinate(latitude=57.64908..., longitude=10.40740...)
    """
    bits = _geohash_to_bits(geohash)

    # Longitude owns the even bit positions, latitude the odd ones
    lon_low, lon_high = _narrow(bits[::2], LON_RANGE)
    lat_low, lat_high = _narrow(bits[1::2], LAT_RANGE)

    return BoundingBox(
        lower=Coordinate(latitude=lat_low, longitude=lon_low),
        upper=Coordinate(latitude=lat_high, longitude=lon_high),
    )


def decode(geohash: str) -> Coordinate:
    """Decode a geohash into the center of its cell.

    A longer string gives a more accurate coordinate.

    Raises:
        EmptyInputError: If geohash is empty
        InvalidCharactersError: If geohash contains invalid characters
    """
    return bounds(geohash).center


def encode(latitude: float, longitude: float, precision: int = DEFAULT_PRECISION) -> str:
    """Encode a (latitude, longitude) pair into a geohash string.

    Args:
        latitude: Latitude in degrees [-90, 90]
        longitude: Longitude in degrees [-180, 180]
        precision: Number of base32 characters, a Precision preset or any
            positive int (default: Precision.MEDIUM)

    Returns:
        Geohash string of ``precision`` characters

    Raises:
        InvalidCoordinatesError: If either coordinate is out of range
        InvalidPrecisionError: If precision is not a positive integer

    Examples:
        >>> encode(57.64911, 10.40744)
        'u4pru'
        >>> encode(57.64911, 10.40744, precision=Precision.HIGH)
        'u4pruyd'
    """
    if not LAT_RANGE[0] <= latitude <= LAT_RANGE[1]:
        raise InvalidCoordinatesError(f"Latitude {latitude} out of range {LAT_RANGE}")
    if not LON_RANGE[0] <= longitude <= LON_RANGE[1]:
        raise InvalidCoordinatesError(f"Longitude {longitude} out of range {LON_RANGE}")

    total_bits = _resolve_precision(precision) * BITS_PER_CHAR

    lon_interval = list(LON_RANGE)
    lat_interval = list(LAT_RANGE)
    bits: List[int] = []
    use_lon = True

    for _ in range(total_bits):
        interval = lon_interval if use_lon else lat_interval
        value = longitude if use_lon else latitude
        mid = (interval[0] + interval[1]) / 2

        if value >= mid:
            bits.append(1)
            interval[0] = mid
        else:
            bits.append(0)
            interval[1] = mid

        use_lon = not use_lon

    return _bits_to_geohash(bits)


def neighbor(geohash: str, direction: CompassDirection) -> str:
    """Return the same-precision geohash adjacent in ``direction``.

    The neighbor's center is the source center shifted by one cell height
    and/or width. Crossing the antimeridian wraps around; stepping past a
    pole stays in the polar row.

    Raises:
        EmptyInputError: If geohash is empty
        InvalidCharactersError: If geohash contains invalid characters
    """
    return _neighbor_of_box(bounds(geohash), direction, len(geohash))


def neighbors(geohash: str, include_center: bool = False) -> List[str]:
    """Return the eight surrounding geohashes in clockwise order.

    Order is N, NE, E, SE, S, SW, W, NW, with the input appended as the
    ninth element when ``include_center`` is set::

        7 0 1
        6 8 2
        5 4 3

    Raises:
        EmptyInputError: If geohash is empty
        InvalidCharactersError: If geohash contains invalid characters

    Examples:
        >>> neighbors("u4pru")
        ['u4r2h', 'u4r2j', 'u4prv', 'u4prt', 'u4prs', 'u4pre', 'u4prg', 'u4r25']
    """
    box = bounds(geohash)
    precision = len(geohash)

    results = [_neighbor_of_box(box, direction, precision) for direction in CLOCKWISE_DIRECTIONS]
    if include_center:
        results.append(geohash)
    return results


# Public exports
__all__ = [
    # Core functions
    "bounds",
    "decode",
    "encode",
    "neighbor",
    "neighbors",

    # Alphabet
    "BASE32_ALPHABET",
    "index_of",
    "symbol_of",

    # Data types
    "BoundingBox",
    "CompassDirection",
    "Coordinate",
    "Precision",
    "CLOCKWISE_DIRECTIONS",
    "DEFAULT_PRECISION",
    "LonLat",
    "BBox",
    "Polygon",

    # Exceptions
    "GeohashError",
    "EmptyInputError",
    "InvalidCharactersError",
    "InvalidCoordinatesError",
    "InvalidPrecisionError",
]
