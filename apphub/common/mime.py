"""Content types of static files by extension."""
import posixpath


DEFAULT_MIME_TYPE = 'application/octet-stream'

MIME_TYPES = {
    '.html': 'text/html',
    '.htm': 'text/html',
    '.css': 'text/css',
    '.js': 'application/javascript',
    '.mjs': 'application/javascript',
    '.json': 'application/json',
    '.map': 'application/json',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.svg': 'image/svg+xml',
    '.ico': 'image/x-icon',
    '.webp': 'image/webp',
    '.woff': 'font/woff',
    '.woff2': 'font/woff2',
    '.ttf': 'font/ttf',
    '.eot': 'application/vnd.ms-fontobject',
    '.txt': 'text/plain',
    '.md': 'text/markdown',
    '.xml': 'application/xml',
    '.wasm': 'application/wasm',
}


def get_mime_type(path: str) -> str:
    """Get the content type of a file from its extension.

    Args:
        path: The file path or name.

    Returns:
        The content type, `DEFAULT_MIME_TYPE` for unknown extensions.

    """
    _, ext = posixpath.splitext(path)
    return MIME_TYPES.get(ext.lower(), DEFAULT_MIME_TYPE)
