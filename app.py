"""Local HTTP bridge between the UI shell and the punch engine.

Run with `python app.py` (APP_ENV picks the settings module).
"""

from src.punch_engine.punch_engine.main import create_app

app = create_app()


if __name__ == "__main__":
    # The engine keeps state in-process; the reloader would start a second copy.
    app.run(host="127.0.0.1", port=5000, debug=app.config["DEBUG"], use_reloader=False)
