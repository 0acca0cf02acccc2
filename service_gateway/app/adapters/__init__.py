"""
Adapters package for the Gateway Service.

Contains the HTTP client wrapper that forwards requests to the domain
services (auth, product, order). The adapter encapsulates:

- Header rewriting (forwarded-for, request id, hop-by-hop removal)
- Streaming the downstream response back unchanged
- Error handling that maps transport failures to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .service_proxy import ServiceProxy

__all__ = [
    "ServiceProxy",
]
