"""Fact verification against a curated reference dataset."""
