"""
Field records, their binary container, interpolation on them, and the
readers for the export formats they are built from.
"""
