"""Domain Layer: value objects, events, errors and ports.

Nothing in here performs I/O; infrastructure adapters implement the
interfaces and core services orchestrate them.
"""
