"""Liveness (``/health``) and readiness (``/ready``) probe resources."""
