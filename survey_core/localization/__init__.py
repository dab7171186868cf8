"""
Localization Module: Reference ellipsoids and geodetic frames.

Key pieces:
- Ellipsoid / ellipsoid_params: reference ellipsoid table
- lla_to_ecef / ecef_to_lla / ecef_to_lla_kleder: geodetic conversions
- ecef_to_local_rotation: ECEF -> local east-north-up tangent frame
"""

from .ellipsoids import (
    Ellipsoid,
    EllipsoidDescription,
    ELLIPSOIDS,
    WGS_84,
    GRS_80,
    ellipsoid_params,
)
from .coordinate_converter import (
    GeodeticCoordinate,
    lla_to_ecef,
    ecef_to_lla,
    ecef_to_lla_kleder,
    ecef_to_local_rotation,
)

__all__ = [
    # Ellipsoids
    'Ellipsoid',
    'EllipsoidDescription',
    'ELLIPSOIDS',
    'WGS_84',
    'GRS_80',
    'ellipsoid_params',
    # Conversions
    'GeodeticCoordinate',
    'lla_to_ecef',
    'ecef_to_lla',
    'ecef_to_lla_kleder',
    'ecef_to_local_rotation',
]
