"""
Utils module for GNNpy.
"""

from .utils import calculate_fan_in_fan_out, check_positive, glorot_normal, glorot_uniform, zeros

__all__ = ["calculate_fan_in_fan_out", "check_positive", "glorot_uniform", "glorot_normal", "zeros"]
