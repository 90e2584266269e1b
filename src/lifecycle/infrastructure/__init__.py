"""
Lifecycle Infrastructure - persistence and external adapters
"""
