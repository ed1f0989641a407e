"""
Configuration for the TTC fusion pipeline.
"""

from .fusion_config import FusionConfig, load_fusion_config

__all__ = ['FusionConfig', 'load_fusion_config']
