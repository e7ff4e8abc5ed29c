"""
Inbound identity boundary and coarse system-group gating.

Token verification itself lives outside this service: an IdentityVerifier
installed on ``app.state.identity_verifier`` turns a bearer token into a
verified Principal.
"""
