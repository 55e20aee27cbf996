import os

from .app import create_app

if __name__ == "__main__":  # pragma: no cover
    app = create_app()
    # Bind to localhost by default; put a reverse proxy in front for anything else
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "8088"))
    app.run(host=host, port=port, debug=False)
