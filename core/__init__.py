"""Core module - vendor-neutral models, storage and observability.

This module contains the record and result models, the filesystem and report
storage helpers, and the logging stack. It is intentionally MAM-agnostic.

Iconik-specific logic belongs in /connectors/.
"""

__version__ = "1.0.0"
