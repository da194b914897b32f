"""Viewport synchronization.

- cancellation: Cooperative cancellation tokens for asynchronous I/O
- store: Immutable-snapshot store for POIs, routes, tracks and location
- scheduler: Per-lane debounce / fingerprint / supersession state machine
- location: Multi-strategy device positioning
"""
