"""Pipeline orchestration.

Drives the end-to-end run, one file at a time:
1. Read features → apply the global skip/limit window
2. Aggregate or map per feature → triples
3. Batch load → accumulate the run summary
"""
