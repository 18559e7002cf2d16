"""Compiled kernels and the row worker pool."""
