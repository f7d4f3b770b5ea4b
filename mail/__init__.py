"""mail/ -- Outbound mail delivery for one-time codes.

Layer rule: mail/ imports only stdlib. It does NOT import from api/, auth/,
posts/, or core/. auth/ hands it an address, a subject and a body.
"""
