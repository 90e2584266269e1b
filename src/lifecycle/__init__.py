"""
Instance Lifecycle Context
Provisioning, supervision and teardown of per-tenant instances
"""
