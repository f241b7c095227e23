"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from zook_admin.api.routes import register_routes
from zook_admin.config import SERVICE_NAME, TOKEN_EXPIRY_HOURS
from zook_admin.database import create_schema, init_engine
from zook_admin.envelope import register_error_handlers
from zook_admin.payments import PaymentGateway


def create_app(engine=None, payment_gateway=None):
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    if engine is None:
        try:
            print("[init] Initializing database connection...")
            engine = init_engine()
            if os.getenv("AUTO_CREATE_SCHEMA") == "1":
                create_schema(engine)
            print("[init] API server ready")
        except Exception as e:
            print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
            traceback.print_exc()
            sys.exit(1)

    # ── Register routes ──────────────────────────────────────────────
    register_error_handlers(app)
    register_routes(app, engine, payment_gateway or PaymentGateway())

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print(f"{SERVICE_NAME} – REST API Server")
    print("=" * 60)

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] Token expiry: {TOKEN_EXPIRY_HOURS} hours")
    print("\nAPI Endpoints:")
    print(f"  - POST http://{host}:{port}/api/auth/login")
    print(f"  - GET  http://{host}:{port}/api/auth/profile")
    print(f"  - GET  http://{host}:{port}/api/<resource>")
    print(f"  - GET  http://{host}:{port}/health")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
