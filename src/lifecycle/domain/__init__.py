"""
Lifecycle Domain Layer
Entities, contracts and pure services with no framework dependencies
"""
