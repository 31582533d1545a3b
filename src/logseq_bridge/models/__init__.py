"""Block and configuration models for logseq-bridge."""
