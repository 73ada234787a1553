"""TimeMoto -> Personio attendance bridge.

This package is organized by feature modules (events, sessions, anomalies,
reconciliation, ...) with a thin Flask controller layer and service/repository
layers underneath.
"""
