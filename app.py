"""Development entry point: ``python app.py`` serves the JSON API."""

import os

from src.attendance_engine.attendance_engine.main import create_app

app = create_app()


if __name__ == "__main__":
    app.run(host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "5000")))
