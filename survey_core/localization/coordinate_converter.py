"""
Geodetic coordinate conversions and local tangent frames.

Converts between earth-centered (ECEF) and geodetic (lat, lon, alt)
coordinates and builds the rotation from ECEF vectors into the local
east-north-up (ENU) tangent frame at a given point.

Frames:
- ECEF: meters, origin at the ellipsoid center
- Geodetic: degrees (geodetic latitude), altitude in meters above ellipsoid
- Local: rows of the rotation are (east, north, up)
"""

import math
import logging
from typing import Optional
from dataclasses import dataclass
import numpy as np

from .ellipsoids import Ellipsoid

logger = logging.getLogger(__name__)


@dataclass
class GeodeticCoordinate:
    """Geodetic coordinate."""
    lat: float      # geodetic latitude (degrees)
    lon: float      # longitude (degrees)
    alt: float      # height above ellipsoid (m)


def lla_to_ecef(ell: Ellipsoid, lat: float, lon: float, alt: float) -> np.ndarray:
    """
    Convert geodetic coordinates to ECEF.

    Args:
        ell: Reference ellipsoid
        lat: Geodetic latitude (degrees)
        lon: Longitude (degrees)
        alt: Height above ellipsoid (m)

    Returns:
        ECEF position (x, y, z) in meters
    """
    lat_rad = math.radians(lat)
    lon_rad = math.radians(lon)
    sin_lat = math.sin(lat_rad)
    cos_lat = math.cos(lat_rad)

    # Prime vertical radius of curvature
    n = ell.a / math.sqrt(1.0 - ell.e2 * sin_lat ** 2)

    return np.array([
        (n + alt) * cos_lat * math.cos(lon_rad),
        (n + alt) * cos_lat * math.sin(lon_rad),
        (n * (1.0 - ell.e2) + alt) * sin_lat,
    ])


def ecef_to_lla(ell: Ellipsoid, ecef, tol_rad: float = 1.0e-11) -> GeodeticCoordinate:
    """
    Convert ECEF to geodetic coordinates by fixed-point iteration on latitude.

    Args:
        ell: Reference ellipsoid
        ecef: ECEF position (x, y, z) in meters
        tol_rad: Latitude convergence threshold (1e-11 rad is ~0.05 mm)

    Returns:
        GeodeticCoordinate
    """
    x, y, z = (float(v) for v in ecef)
    rxy = math.hypot(x, y)

    lat = math.atan2(z, (1.0 - ell.e2) * rxy)
    while True:
        sin_lat = math.sin(lat)
        rp = ell.a / math.sqrt(1.0 - ell.e2 * sin_lat ** 2)
        new_lat = math.atan2(z + ell.e2 * rp * sin_lat, rxy)
        err = abs(new_lat - lat)
        lat = new_lat
        if err <= tol_rad:
            break

    sin_lat = math.sin(lat)
    rp = ell.a / math.sqrt(1.0 - ell.e2 * sin_lat ** 2)
    alt = math.cos(lat) * rxy + sin_lat * (z + ell.e2 * rp * sin_lat) - rp

    return GeodeticCoordinate(
        lat=math.degrees(lat),
        lon=math.degrees(math.atan2(y, x)),
        alt=alt,
    )


def ecef_to_lla_kleder(ell: Ellipsoid, ecef) -> GeodeticCoordinate:
    """
    Convert ECEF to geodetic coordinates without iterations.

    Closed-form approximation (M. Kleder, 2006). Precise to well below a
    millimeter near the surface and well behaved at the poles.

    Args:
        ell: Reference ellipsoid
        ecef: ECEF position (x, y, z) in meters

    Returns:
        GeodeticCoordinate
    """
    x, y, z = (float(v) for v in ecef)
    p = math.hypot(x, y)  # equatorial plane distance
    th = math.atan2(ell.a * z, ell.b * p)
    sin_th = math.sin(th)
    cos_th = math.cos(th)

    lat = math.atan2(
        z + ell.ep2 * ell.b * sin_th ** 3,
        p - ell.e2 * ell.a * cos_th ** 3,
    )
    sin_lat = math.sin(lat)
    n = ell.a / math.sqrt(1.0 - ell.e2 * sin_lat ** 2)

    # No singularity at the poles, unlike p / cos(lat) - N
    alt = math.cos(lat) * p + sin_lat * (z + ell.e2 * n * sin_lat) - n

    return GeodeticCoordinate(
        lat=math.degrees(lat),
        lon=math.degrees(math.atan2(y, x)),
        alt=alt,
    )


def ecef_to_local_rotation(
    ell: Ellipsoid,
    ecef,
    geodetic_lat: Optional[float] = None
) -> np.ndarray:
    """
    Rotation matrix from ECEF vectors to the local ENU tangent frame.

    Args:
        ell: Reference ellipsoid
        ecef: ECEF position (x, y, z) of the tangent point in meters
        geodetic_lat: Geodetic latitude of the point in degrees, if already
            known (computed from ecef otherwise)

    Returns:
        3x3 orthonormal matrix whose rows are the east, north and up unit
        vectors expressed in ECEF

    Notes:
        - At the north pole (lat >= 90) the identity is returned
        - At the south pole (lat <= -90) the negated identity is returned
    """
    if geodetic_lat is None:
        geodetic_lat = ecef_to_lla_kleder(ell, ecef).lat

    if geodetic_lat >= 90.0:
        return np.eye(3)
    if geodetic_lat <= -90.0:
        return -np.eye(3)

    x, y, z = (float(v) for v in ecef)
    xy = math.hypot(x, y)

    # Easting is parallel to the equator plane
    east = np.array([-y / xy, x / xy, 0.0])

    # Up is tilted by the geodetic latitude. The offset d moves the point
    # along Z to where the ellipsoid normal crosses the polar axis:
    #   d = Rn * e^2 * sin(lat),  Rn = a / sqrt(1 - e^2 sin^2(lat))
    # which avoids tan(lat) * xy blowing up near the poles.
    sin_lat = math.sin(math.radians(geodetic_lat))
    d = ell.e2 * sin_lat * ell.a / math.sqrt(1.0 - ell.e2 * sin_lat ** 2)
    up = np.array([x, y, z + d])
    up /= np.linalg.norm(up)

    north = np.cross(up, east)

    return np.vstack([east, north, up])
