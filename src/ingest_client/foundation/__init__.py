"""Foundation utilities for shared infrastructure components.

This package provides shared utilities including:
- Pooled HTTP transport with bounded connections
- Structured JSON logging
- Retry helpers and error classification
"""
