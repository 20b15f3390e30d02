"""Geographic coordinate value type."""

from __future__ import annotations

from dataclasses import dataclass

from ._validation import validate_float_range


@dataclass(frozen=True, slots=True)
class Coordinate:
    """Immutable latitude/longitude pair in decimal degrees.

    Attributes:
        latitude: Degrees north, within ``[-90, 90]``.
        longitude: Degrees east, within ``[-180, 180]``.

    Raises:
        TypeError: If either value is not a number.
        ValueError: If either value is out of range, NaN or infinite.

    Examples:
        ```python
        berlin = Coordinate(52.52, 13.405)
        berlin.latitude  # 52.52
        ```
    """

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "latitude", validate_float_range(self.latitude, "latitude", -90.0, 90.0)
        )
        object.__setattr__(
            self, "longitude", validate_float_range(self.longitude, "longitude", -180.0, 180.0)
        )
