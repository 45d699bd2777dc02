"""
Card identity: a stable id derived from a document path and heading text.
"""

import hashlib

# NUL cannot appear in vault paths or heading text, so two different
# (path, heading) pairs never join into the same string.
_SEPARATOR = "\x00"
ID_LENGTH = 16


def generate_card_id(document_path: str, heading: str) -> str:
    """Return the card id for *heading* in *document_path*.

    The id depends on nothing but the two inputs, so it can be recomputed at
    any time instead of being looked up.
    """
    key = f"{document_path}{_SEPARATOR}{heading}".encode("utf-8")
    return hashlib.sha256(key).hexdigest()[:ID_LENGTH]
