"""
handlers — OAuth2 provider handlers.

Provides a generic handler framework that covers:
  • Authorization-URL generation (with relay state)
  • Code → credential exchange and refresh-token renewal
  • Classification of provider error codes into a shared ErrorKind taxonomy
  • Persisting the refresh token on the mailbox's data source

Each provider (Outlook, Yahoo, Google) is a subclass of OAuth2Handler,
resolved by name through HandlerRegistry.
"""
