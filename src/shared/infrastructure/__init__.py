"""
Shared Infrastructure Layer
Database, security, and observability
"""
