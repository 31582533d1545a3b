"""logseq-bridge: convert between Logseq outline text and block trees."""

__version__ = "0.1.0"
