"""
Turon Chat Proxy

A small HTTP proxy answering questions about Turon O'quv Markazi. Common questions
are answered from a static Knowledge Base; everything else in scope is forwarded to
a hosted language model on Replicate.
"""

__version__ = "1.0.0"
__author__ = "Turon Chat Proxy Team"
