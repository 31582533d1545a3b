"""Utility modules for logseq-bridge."""
