"""
Categorized tool registry

- catalogue: immutable categories and operations
- loader: lazy, at-most-once category registration
- dispatcher: resolve, validate, lease, execute, release
- shaper: bounded response envelopes
- facade: ToolRegistry, the entry point used by the server
"""
