"""Static page server.

Serves a few fixed HTML pages by route and every other file from the base
directory as-is. Run with ``python server.py`` or ``static-page-router``.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from flask import Flask, redirect, send_from_directory
from werkzeug.exceptions import NotFound
from werkzeug.serving import make_server

DEFAULT_PORT = 3000
INDEX_FILE = 'index.html'

# Route tables, selected with the ROUTES environment variable
ROUTE_TABLES = MappingProxyType({
    'index': MappingProxyType({
        '/': 'index.html',
    }),
    'pages': MappingProxyType({
        '/fake': 'index-fake.html',
        '/real': 'index-real.html',
        '/other': 'index-other.html',
    }),
})

CONTENT_TYPES = MappingProxyType({
    '.html': 'text/html',
    '.htm': 'text/html',
    '.css': 'text/css',
    '.js': 'text/javascript',
    '.mjs': 'text/javascript',
    '.json': 'application/json',
    '.txt': 'text/plain',
    '.svg': 'image/svg+xml',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
    '.ico': 'image/x-icon',
    '.woff': 'font/woff',
    '.woff2': 'font/woff2',
    '.pdf': 'application/pdf',
    '.mp4': 'video/mp4',
    '.webm': 'video/webm',
    '.mp3': 'audio/mpeg',
    '.wav': 'audio/wav',
    '.avif': 'image/avif',
    '.ttf': 'font/ttf',
    '.otf': 'font/otf',
    '.xml': 'application/xml',
    '.map': 'application/json',
    '.wasm': 'application/wasm',
    '.md': 'text/markdown',
})
FALLBACK_CONTENT_TYPE = 'application/octet-stream'


class ConfigError(ValueError):
    """Raised when the environment holds an unusable setting."""


@dataclass(frozen=True)
class ServerConfig:
    """Listener and routing settings, built once at startup."""

    host: str = '0.0.0.0'
    port: int = DEFAULT_PORT
    root: Path = field(default_factory=Path.cwd)
    routes: Mapping[str, str] = field(default_factory=lambda: ROUTE_TABLES['index'])

    @classmethod
    def from_env(cls, environ=None, root=None):
        """Read ``PORT`` and ``ROUTES`` from *environ* (``os.environ`` by default)."""
        if environ is None:
            environ = os.environ

        raw_port = environ.get('PORT', '').strip()
        if raw_port:
            try:
                port = int(raw_port)
            except ValueError:
                raise ConfigError(f'PORT must be an integer, got {raw_port!r}') from None
            if not 0 < port < 65536:
                raise ConfigError(f'PORT out of range: {port}')
        else:
            port = DEFAULT_PORT

        variant = environ.get('ROUTES', '').strip() or 'index'
        if variant not in ROUTE_TABLES:
            choices = ', '.join(sorted(ROUTE_TABLES))
            raise ConfigError(f'Unknown ROUTES {variant!r} (expected one of: {choices})')

        return cls(
            port=port,
            root=Path(root) if root is not None else Path.cwd(),
            routes=ROUTE_TABLES[variant],
        )


def content_type_for(filename):
    """Content type by extension; anything not in the table is octet-stream."""
    suffix = os.path.splitext(filename)[1].lower()
    return CONTENT_TYPES.get(suffix, FALLBACK_CONTENT_TYPE)


def create_app(config: Optional[ServerConfig] = None) -> Flask:
    if config is None:
        config = ServerConfig.from_env()
    root = Path(config.root).resolve()

    # Fallback serving below replaces Flask's own static route
    app = Flask(__name__, static_folder=None)
    app.config['SERVER_CONFIG'] = config

    def send(filename):
        # Raises NotFound for missing files and paths outside root
        return send_from_directory(root, filename, mimetype=content_type_for(filename))

    def page_view(filename):
        def view():
            return send(filename)
        return view

    for route, filename in config.routes.items():
        app.add_url_rule(
            route,
            endpoint=f'page:{route}',
            view_func=page_view(filename),
            methods=['GET'],
            strict_slashes=False,
        )

    def static_file(filename):
        segments = [segment for segment in filename.split('/') if segment]
        # Hidden files and '..' segments are never served
        if any(segment.startswith('.') for segment in segments):
            raise NotFound()

        if root.joinpath(*segments).is_dir():
            index_name = '/'.join(segments + [INDEX_FILE])
            if filename and not filename.endswith('/'):
                if not root.joinpath(index_name).is_file():
                    raise NotFound()
                return redirect(f'/{filename}/', code=301)
            return send(index_name)

        return send(filename)

    if '/' not in config.routes:
        app.add_url_rule('/', endpoint='static_index', view_func=static_file,
                         defaults={'filename': ''}, methods=['GET'])
    app.add_url_rule('/<path:filename>', endpoint='static_file', view_func=static_file, methods=['GET'])

    @app.errorhandler(OSError)
    def unreadable_file(error):
        app.logger.exception('Failed to read file: %s', error)
        return 'Internal Server Error', 500, {'Content-Type': 'text/plain; charset=utf-8'}

    return app


def main(config: Optional[ServerConfig] = None):
    if config is None:
        config = ServerConfig.from_env()

    # Only errors get logged at runtime, not every request
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    # Exits the process if the port cannot be bound
    httpd = make_server(config.host, config.port, create_app(config), threaded=True)
    print(f'Presentation server running at http://localhost:{config.port}')
    print('Press Ctrl+C to stop')
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        httpd.server_close()


if __name__ == '__main__':
    main()
