"""
Role-based access control for the administrative surface.

- Permission grammar and wildcard matching
- Permission resolution for a verified principal
- Route guard dependencies (fail-closed)
- Atomic replace of role/permission assignments
"""
