"""Local table storage layer.

This package persists decoded wave tables and their variable labels as
Parquet files and powers table loading for the merge layer and SDK.
"""
