"""Spectrum comparison operators."""
