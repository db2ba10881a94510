import logging

from flask import Flask

from api.routes import register_routes

DEFAULTS = {
    "SIM_DEFAULT_DT": 0.1,
    "SIM_MAX_STEPS": 600,
    "LOG_LEVEL": "INFO",
}


def create_app(config=None):
    app = Flask(__name__)
    app.config.update(DEFAULTS)
    app.config.from_prefixed_env("SANDBOX")
    if config:
        app.config.update(config)
    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    register_routes(app)
    return app


app = create_app()


if __name__ == "__main__":
    app.run(debug=True, port=8080)
