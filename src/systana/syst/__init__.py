"""Systematic shifts and variation sets."""
