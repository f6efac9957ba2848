"""
Recipe browsing and filtering.

Responsibilities:
- Load the processed recipe corpus into memory.
- Translate filter requests into boolean masks over the corpus.
- Serve single-recipe lookups and the distinct filter option values.
- Project recipes into response views with a per-user ``liked`` flag.
"""
