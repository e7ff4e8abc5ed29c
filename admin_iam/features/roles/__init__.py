"""
Role management: named bundles of permissions.
"""
