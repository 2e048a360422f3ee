"""
fitvideo
Pause detection, workout segmentation and progress-bar overlay video
rendering for FIT activity files.
"""

__version__ = "1.0.0"
