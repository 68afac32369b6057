"""Collection publishing layer.

This package registers ingested collections with a host registry.
It applies per-item metadata enrichment when collections are read.
"""
