"""
AutoClaims: vehicle insurance damage claims service.

File claims, upload damage photos, attach a mocked repair estimate and let
adjusters review claim state.
"""

__version__ = "1.0.0"
