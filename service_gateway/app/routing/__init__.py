"""
Routing package for the Gateway.

Holds the static prefix table that decides which domain service receives a
request and how its path is rewritten.
"""

from .table import Route, RouteMatch, RouteTable

__all__ = ["Route", "RouteMatch", "RouteTable"]
