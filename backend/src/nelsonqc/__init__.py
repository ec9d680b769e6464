"""nelsonqc: Nelson Rules monitoring for shared QC measurement series."""

__version__ = "0.1.0"
