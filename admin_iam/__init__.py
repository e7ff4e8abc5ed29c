"""
Admin IAM service.

Fine-grained RBAC for the administrative API surface: permission grammar,
permission resolution, route guards, assignment management and audit trail.
"""
__version__ = "0.1.0"
