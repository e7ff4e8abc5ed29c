"""
Admin user management.

AdminUser bridges an externally verified principal (subject id) to the RBAC
tables. Rows are never hard-deleted.
"""
