"""
SongPrint - Acoustic Song Recognition

Identifies an audio clip by matching band-peak fingerprints against an
index built from a library of known recordings, scoring candidates by
time-offset alignment.
"""

__version__ = "1.0.0"
__author__ = "SongPrint Team"
