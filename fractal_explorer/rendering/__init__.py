"""Palettes, image output and histograms."""
