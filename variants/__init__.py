"""Registered renderers; every submodule is imported by variants_core.discover_variants()."""
