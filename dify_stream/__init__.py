"""
Dify Stream Client

Client-side orchestration layer for a Dify-style conversational backend:
streaming and blocking chat calls, server-sent event reassembly, and the
rate limiting, caching, deduplication and metrics that gate them.
"""

__version__ = "0.1.0"
