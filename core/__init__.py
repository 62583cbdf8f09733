"""
core - Run coordination and shared infrastructure

Modules:
- exceptions: Error hierarchy and error codes
- logging_config: Console and debug-file logging
- throttle: Bounded worker pool for remote calls
- run_context: Per-invocation counters and totals
- snapshot_runner: Coordinating flow (parse, inject, validate, export)
"""
