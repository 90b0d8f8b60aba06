"""Local development entry point.

Usage:
    python run.py

Production runs the same app under gunicorn:
    gunicorn "xistracloud:create_app()"
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env before anything else

from xistracloud import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=app.debug, host="0.0.0.0", port=app.config["PORT"])
