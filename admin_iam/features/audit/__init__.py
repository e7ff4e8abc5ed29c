"""
Append-only audit trail of administrative state changes.
"""
