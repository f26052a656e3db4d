"""Analysis table assembly.

This package joins stored wave tables onto the demographics table by
respondent id and stacks their variable labels into one dictionary.
"""
