# JSON text encoding for the document columns (inventory, challenges).
# The table stores them as TEXT; NULL stands for "never written".
# Stored text is strict JSON and pure ASCII: no NaN/Infinity tokens, and
# non-ASCII (lone surrogates included) travels as \u escapes.


import json
from typing import Any


def encode_document(value: Any) -> str | None:
    """Serialize a JSON-compatible tree to column text. None stays SQL NULL.

    Raises ValueError for non-finite floats, which have no JSON spelling.
    """
    if value is None:
        return None
    return json.dumps(value, separators=(",", ":"), allow_nan=False)


def decode_document(text: str | None) -> Any:
    """Parse column text back into the tree that was written.

    Raises ValueError (json.JSONDecodeError) on malformed stored text.
    """
    if text is None:
        return None
    return json.loads(text)
