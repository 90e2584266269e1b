"""
Shared Layer - Cross-Cutting Concerns
Domain contracts, persistence, security and observability used by every context
"""
