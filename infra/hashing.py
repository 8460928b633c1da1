"""
Content hashing shared by the sync client and the ingestor.

SHA-256, lowercase hex. Every higher layer (chunks, tree leaves, tree nodes)
derives its identity from these three functions, so changing any of them
invalidates every persisted root and every remote cache key.
"""

import hashlib


def content_hash(content: str | bytes) -> str:
    """Digest of exact content. Strings are hashed as UTF-8."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def leaf_hash(relative_path: str, content: bytes) -> str:
    """File-level digest bound to the file's location: H(path || bytes)."""
    digest = hashlib.sha256()
    digest.update(relative_path.encode("utf-8"))
    digest.update(content)
    return digest.hexdigest()


def pair_hash(left: str, right: str) -> str:
    """Parent digest over two hex child digests: H(left || right)."""
    return hashlib.sha256((left + right).encode("ascii")).hexdigest()
