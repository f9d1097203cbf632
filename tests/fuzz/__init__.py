"""Fuzz testing infrastructure for modloadfuzz.

This package contains:
- test_run_oracle: State machine over TestRun checked against a shadow model
- test_graph_properties: High-volume generator and serializer properties

Python 3.13+.
"""
