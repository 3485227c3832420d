"""
WSGI entry point for Gunicorn deployment.

    gunicorn consistency_engine.wsgi:app
"""

from consistency_engine.app import create_app

app = create_app()

if __name__ == "__main__":
    app.run()
