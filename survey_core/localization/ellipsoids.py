"""
Reference ellipsoid definitions.

Each ellipsoid is listed by semi-major axis and inverse flattening; the
semi-minor axis and eccentricities are derived.

References:
- NGA website (http://earth-info.nga.mil)
- GLONASS ICD Edition 5.1
"""

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class Ellipsoid:
    """
    Reference ellipsoid parameters.

    Attributes:
        a: Semi-major axis, radius on the equator plane (m)
        f: Flattening
        b: Semi-minor axis, radius from center to poles (m)
        e2: Squared first eccentricity
        ep2: Squared second eccentricity
    """

    a: float
    f: float
    b: float
    e2: float
    ep2: float

    @classmethod
    def from_flattening(cls, a: float, f: float) -> "Ellipsoid":
        """Build an ellipsoid from semi-major axis and flattening."""
        b = a * (1.0 - f)
        e2 = (a * a - b * b) / (a * a)
        ep2 = e2 / (1.0 - e2)
        return cls(a=a, f=f, b=b, e2=e2, ep2=ep2)

    @classmethod
    def from_inverse_flattening(cls, a: float, inv_f: float) -> "Ellipsoid":
        """Build an ellipsoid listed with 1/flattening."""
        return cls.from_flattening(a, 1.0 / inv_f)


@dataclass(frozen=True)
class EllipsoidDescription:
    """Named ellipsoid entry."""

    short_name: str
    long_name: str
    ellipsoid: Ellipsoid


def _entry(short_name: str, long_name: str, a: float, inv_f: float) -> EllipsoidDescription:
    return EllipsoidDescription(short_name, long_name, Ellipsoid.from_inverse_flattening(a, inv_f))


ELLIPSOIDS: Dict[str, EllipsoidDescription] = {
    entry.short_name: entry for entry in (
        _entry("WGS84", "World Geodetic System 1984", 6378137.0, 298.257223563),
        _entry("WGS72", "World Geodetic System 1972", 6378135.0, 298.26),
        _entry("PZ-90", "Parametri Zemli 1990", 6378136.0, 298.25784),
        _entry("GRS80", "Geodetic Reference System 1980", 6378137.0, 298.257222101),
        _entry("CLK66", "Clarke 1866", 6378206.4, 294.9786982),
        _entry("CLK80", "Clarke 1880", 6378249.145, 293.465),
        _entry("AIR30", "Airy 1830", 6377563.396, 299.3249646),
        _entry("AUSNT", "Australian National", 6378160.0, 298.25),
        _entry("BES41", "Bessel 1841", 6377397.155, 299.1528128),
        _entry("BEN41", "Bessel 1841 (Namibia)", 6377483.865, 299.1528128),
        _entry("EVRBM", "Everest (Brunei, E. Malaysia (Sabah and Sarawak))", 6377298.556, 300.8017),
        _entry("EVR30", "Everest 1830", 6377276.345, 300.8017),
        _entry("EVR56", "Everest 1956 (India and Nepal)", 6377301.243, 300.8017),
        _entry("EVRPK", "Everest (Pakistan)", 6377309.613, 300.8017),
        _entry("EVR48", "Everest 1948 (W. Malaysia and Singapore)", 6377304.063, 300.8017),
        _entry("EVR69", "Everest 1969 (W. Malaysia)", 6377295.664, 300.8017),
        _entry("HLM06", "Helmert 1906", 6378200.0, 298.3),
        _entry("HGH60", "Hough 1960", 6378270.0, 297.0),
        _entry("IND74", "Indonesian 1974", 6378160.0, 298.247),
        _entry("INT24", "International 1924", 6378388.0, 297.0),
        _entry("KRA40", "Krassovsky 1940", 6378245.0, 298.3),
        _entry("MDAIR", "Modified Airy", 6377340.189, 299.3249646),
        _entry("MFS60", "Modified Fischer 1960", 6378155.0, 298.3),
        _entry("SAM69", "South American 1969", 6378160.0, 298.25),
    )
}

WGS_84 = ELLIPSOIDS["WGS84"].ellipsoid
GRS_80 = ELLIPSOIDS["GRS80"].ellipsoid


def ellipsoid_params(name: str) -> Ellipsoid:
    """
    Look up a reference ellipsoid by short name (case-insensitive).

    Args:
        name: Short name such as "WGS84" or "GRS80"

    Returns:
        Ellipsoid parameters

    Raises:
        ValueError: If the name is not in the table
    """
    entry = ELLIPSOIDS.get(name.upper())
    if entry is None:
        raise ValueError(f"Unknown ellipsoid: {name}")
    return entry.ellipsoid
