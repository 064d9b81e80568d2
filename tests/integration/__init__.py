"""
Integration Tests Package

End-to-end tests that drive a RitualEngine through complete runs.

TEST AXIOMS:
=============
1. Determinism: same inputs + same clock = identical state hash
2. One writer: only the engine's input channels change ritual state
3. Explicit failure: every abnormal input surfaces as a typed condition
"""
