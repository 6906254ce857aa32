"""
auth — internal mailbox authentication.

Provides:
  • Signed mailbox auth tokens (create / verify)
  • ``resolve_mailbox`` — auth token → ``Mailbox`` row
"""
