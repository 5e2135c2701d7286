"""
Relaxation of field records toward harmonic solutions, with geometry masks for
fixed points, and quadrant symmetrization.
"""
