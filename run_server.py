from __future__ import annotations

import argparse
import logging
import socket
import sys

from llanero.db import create_engine_from_url, init_db, make_session_factory
from llanero.settings import Settings
from llanero.ui.web_server import create_app


def _ensure_port_free(host: str, port: int) -> bool:
    # For 0.0.0.0 we bind INADDR_ANY which matches how Flask binds.
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind((host, port))
            return True
        finally:
            s.close()
    except OSError:
        return False


def main() -> int:
    p = argparse.ArgumentParser(description="Llanero Admin - catalog API server")
    p.add_argument("--host", default="127.0.0.1", help="Bind host (use 0.0.0.0 for LAN)")
    p.add_argument("--port", type=int, default=8000, help="Port")
    p.add_argument("--debug", action="store_true", help="Flask debug mode")
    args = p.parse_args()

    if not _ensure_port_free(args.host, args.port):
        print(f"El servidor ya está iniciado (o el puerto está ocupado): {args.host}:{args.port}")
        return 2

    settings = Settings()
    settings.ensure_instance()
    logging.basicConfig(
        stream=sys.stderr,
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = create_engine_from_url(settings.DATABASE_URL)
    init_db(engine)
    session_factory = make_session_factory(engine)

    app = create_app(session_factory, settings)

    print(f"Servidor iniciado: http://{args.host}:{args.port}/  (salud: /health)")
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
