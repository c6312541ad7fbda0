"""
Journal entry identity (RFC 8785 JCS).

The game rewrites whole journal files on some events and the tail re-reads
lines after a restart, so one logical record can be seen more than once.
Identity is the SHA-256 of the entry's canonical JSON form:
- Sorted object keys
- Minimal whitespace
- UTF-8 encoding
Same content -> same key, regardless of key order or spacing in the file.
"""

import hashlib

import canonicaljson


def canonicalJson(obj) -> str:
    """
    Canonical JSON serialization of a parsed journal entry.

    Examples:
        >>> canonicalJson({"event": "FSDJump", "StarSystem": "Sol"})
        '{"StarSystem":"Sol","event":"FSDJump"}'
    """
    return canonicaljson.encode_canonical_json(obj).decode('utf-8')


def entryKey(entry: dict) -> str:
    """Deduplication key for one journal entry"""
    return hashlib.sha256(canonicalJson(entry).encode('utf-8')).hexdigest()
