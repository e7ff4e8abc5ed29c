"""
Permission catalog management.

A permission is an atomic capability keyed as ``<module>:<action>``.
"""
