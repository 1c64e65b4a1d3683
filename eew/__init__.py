"""EEW aggregation and wave-propagation engine.

Turns a stream of Earthquake Early Warning reports from two providers
into per-event state, merged regional intensity and warning-area maps,
and live P/S wavefront distances.
"""

__version__ = "0.1.0"
