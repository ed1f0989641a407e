"""
Time-to-collision estimation by LiDAR/camera fusion.
"""

__version__ = '0.1.0'
