"""Infrastructure layer - External dependencies and implementations.

This layer contains the storage backends (in-memory, local filesystem,
S3) that implement the folder-tree interface the application layer
depends on.
"""
