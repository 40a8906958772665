"""
Knowledge Base module for keyword-based document retrieval.

Provides:
- Keyword extraction from guest messages
- Workspace- and listing-scoped snippet lookup
"""
