"""Rate limiting adapters.

This package holds the limiter interface, the in-memory sliding-window
implementation, and the clock/sleep primitives it is driven by.
"""
