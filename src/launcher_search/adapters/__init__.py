"""Adapters to collaborators outside the search engine."""
