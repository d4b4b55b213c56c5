"""Collaborator adapters for meal capture (blob upload, analysis API)."""
