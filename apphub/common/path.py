"""Validate client supplied relative paths."""
import posixpath


class UnsafePathError(ValueError):
    """The path would escape its base directory."""


def has_traversal(path: str) -> bool:
    """Check whether a client supplied path may escape its base.

    Backslashes are treated as separators, because archives created on
    Windows may use them.

    Returns:
        True if the path is absolute or has a '..' segment.

    """
    normalized = path.replace('\\', '/')
    if normalized.startswith('/'):
        return True
    return any(part == '..' for part in normalized.split('/'))


def normalize_relative(path: str) -> str:
    """Normalize a client supplied relative path.

    Empty and '.' segments are dropped, eg. './img//logo.png' becomes
    'img/logo.png'.

    Raises:
        UnsafePathError if the path has traversal segments or is absolute.

    """
    if has_traversal(path):
        raise UnsafePathError(f'Unsafe path: {path!r}')
    parts = [p for p in path.replace('\\', '/').split('/') if p not in ('', '.')]
    return '/'.join(parts)


def safe_join(base: str, path: str) -> str:
    """Join a relative path to a base key and verify it stays under the base.

    Args:
        base: The base key, eg. "my-app-1a2b/releases/abc".
        path: The relative path supplied by the client.

    Returns:
        The canonical joined key.

    Raises:
        UnsafePathError if the result is not inside `base`.

    """
    base = posixpath.normpath(base.strip('/'))
    rel = normalize_relative(path)
    joined = posixpath.normpath(posixpath.join(base, rel)) if rel else base
    if joined != base and not joined.startswith(base + '/'):
        raise UnsafePathError(f'Path escapes base: {path!r}')
    return joined
