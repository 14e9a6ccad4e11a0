"""Keep local source mirrors in sync with a webhook-fed repository registry.

Two processes share a registry table. The ingest service records repository
metadata from push webhooks and bumps a trigger counter; the reconciler polls
that counter and fetches or removes local mirrors to match the registry.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
