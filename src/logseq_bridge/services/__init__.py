"""Logseq API client, streaming builder and page writer."""
