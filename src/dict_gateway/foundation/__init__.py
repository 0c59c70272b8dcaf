"""Foundation utilities for shared infrastructure components.

This package provides shared utilities including:
- Pooled HTTP sessions
- Structured JSON logging
- Request signing
- Retry policies and error classification
- Token bucket rate limiting
- Correlation (trace id) scoping
"""
