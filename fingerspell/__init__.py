"""
ASL fingerspelling recognition from a live camera.

Pipeline: hand landmarks -> [1, 3, 21] feature tensor -> letter classifier
-> confidence gate -> 3-second stability filter.
"""

__version__ = "1.0.0"
