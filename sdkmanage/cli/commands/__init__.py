"""
CLI command implementations.

Each module exposes ``run(ctx, argv) -> int``.
"""
