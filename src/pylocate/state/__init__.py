"""Locate-cycle state.

This package holds the per-node cycle state machine and the retry policy
applied to provider failures. Both nodes share the same state shape; only
the transitions they drive differ.
"""
