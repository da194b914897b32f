"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Named constants, lanes, endpoint paths
- exceptions: Custom exception hierarchy
"""
