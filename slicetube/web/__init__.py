"""Flask application factory for the SliceTube API."""

from flask import Flask, jsonify

from slicetube.config import PipelineConfig


def create_app(config: PipelineConfig | None = None) -> Flask:
    app = Flask(__name__)
    app.config["PIPELINE"] = config or PipelineConfig()
    app.config["MAX_CONTENT_LENGTH"] = 64 * 1024  # JSON bodies only

    from slicetube.web.routes import bp
    app.register_blueprint(bp)

    @app.after_request
    def cross_origin_isolation(response):
        response.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin-allow-popups")
        response.headers.setdefault("Cross-Origin-Embedder-Policy", "credentialless")
        return response

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": "Request body too large"}), 413

    return app
