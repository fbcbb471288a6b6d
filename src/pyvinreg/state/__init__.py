"""State/concurrency layer.

Events describing committed changes and the per-VIN locks that
serialize the changes themselves.
"""
