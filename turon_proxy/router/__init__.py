"""
Query routing logic for the chat proxy.
"""

from .query_router import QueryRouter, Route, RoutingDecision
from .topic_filter import TopicFilter

__all__ = ["QueryRouter", "Route", "RoutingDecision", "TopicFilter"]
