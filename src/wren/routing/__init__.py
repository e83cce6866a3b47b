"""Routing — pattern compilation, ordered matching, reverse routing, caching.

Routes are declared on route sets, compiled and merged into one table,
and frozen before the first request is matched.
"""
