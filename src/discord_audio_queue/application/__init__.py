"""
Application Layer

Contains the application services that drive the domain through the
resolver and voice transport ports.
"""
