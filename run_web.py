#!/usr/bin/env python3
"""
Entry point for the academic workload API.

Usage:
    python run_web.py

The API will be available at http://127.0.0.1:5000/api
"""

import os
import sys

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from dotenv import load_dotenv
load_dotenv()

from workload import create_app

app = create_app()


if __name__ == "__main__":
    # Development server
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_DEBUG", "1") == "1"

    print(
        f"""
================================================================================
    Gestión de Carga Docente - API
    Sobrecarga docente según Resolución 32/2024
================================================================================

    Server running at: http://127.0.0.1:{port}/api

    Press Ctrl+C to stop the server.
================================================================================
    """
    )

    app.run(
        host="127.0.0.1",
        port=port,
        debug=debug,
    )
