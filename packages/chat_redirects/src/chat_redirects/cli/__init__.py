"""Admin CLI (``chat-redirects``)."""
