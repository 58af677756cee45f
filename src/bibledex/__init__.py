"""Bulk import and search of book/chapter/verse corpora in Elasticsearch/OpenSearch."""

__version__ = "0.1.0"
