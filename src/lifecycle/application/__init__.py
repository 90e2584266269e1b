"""
Lifecycle Application Layer
Use cases orchestrating repositories and external collaborators
"""
