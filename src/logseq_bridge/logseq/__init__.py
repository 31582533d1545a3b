"""Logseq outline text: classification, parsing, serialization and filtering."""
