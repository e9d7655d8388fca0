"""Marketplace link hierarchy and reconciliation engine.

Keeps product- and variant-level marketplace associations for a catalog
consistent across many marketplace accounts: hierarchical sync, rebuild,
integrity validation, repair, SKU-based auto-linking and health statistics.
"""

__version__ = "0.1.0"
