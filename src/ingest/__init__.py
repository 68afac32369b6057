"""KV namespace ingestion.

This package reads a Cloudflare KV namespace and parses its values.
It groups parsed documents into collections for the publish layer.
"""
