"""
Storage keys derived from content.

Records are filed under the object name git would assign to the key (plus a
trailing newline) as a blob. Because of that, listing the notes tree yields
the digests of every stored key, and no separate index is needed.
"""

from __future__ import annotations
import hashlib

__all__ = ["hash_key"]


def hash_key(key: str) -> str:
    """
    Return the object name ``git hash-object`` would produce for ``key + "\\n"``.

    The digest is SHA-1 over ``"blob <n>\\0<key>\\n"`` where ``n`` is the
    UTF-8 byte length of the key plus one.

    Examples:
        >>> hash_key("")
        '8b137891791fe96927ad78e64b0aad7bded08bdc'
        >>> hash_key("hello")
        'ce013625030ba8dba906f756967f9e9ca394464a'
    """
    data = key.encode("utf-8")
    digest = hashlib.sha1()
    digest.update(f"blob {len(data) + 1}\0".encode("ascii"))
    digest.update(data)
    digest.update(b"\n")
    return digest.hexdigest()
