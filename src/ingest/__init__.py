"""Remote NHANES ingestion.

This package lists wave files, downloads them with bounded retry, and
decodes SAS transport and linked mortality payloads for the store layer.
"""
