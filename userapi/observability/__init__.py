"""Observability helpers: structlog JSON logging, request ids, and Prometheus
request metrics exported on ``/metrics``.
"""
