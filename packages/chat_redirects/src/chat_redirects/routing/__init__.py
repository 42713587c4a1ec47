"""
Redirect Routing

Account resolution and sector override lookup.
"""

from chat_redirects.routing.account_resolver import AccountResolver, OverrideEntry

__all__ = [
    "AccountResolver",
    "OverrideEntry",
]
