"""
Survey Core Package.

Statistics engine for GNSS surveying: accuracy metrics, position fusion
and hidden-point trilateration.

Package structure:
- localization: Reference ellipsoids, geodetic conversions, tangent frames
- proto: Value types (samples, measurements, solutions)
- stats: Descriptive stats, covariance metrics, fusion, hidden-point solver
- metrics: Diagnostics, counters, histograms
"""

__version__ = "0.1.0"
