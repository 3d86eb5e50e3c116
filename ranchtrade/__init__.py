"""Bufficorn Ranch trade server."""
