from flask import Flask, jsonify

from tinydb import TinyDB

from zkschnorr.config import PipelineConfig

from schnorr_routes import schnorr_bp, init_schnorr_bp


def create_app(db=None):
    """Flask 앱을 만들고 Schnorr blueprint에 DB를 주입한다.

    db를 주지 않으면 ZKSCHNORR_DB (기본 zkschnorr_db.json) 파일을 연다.
    """
    if db is None:
        db = TinyDB(PipelineConfig.from_env().db_path)  # Storage DB

    app = Flask(__name__)
    app.secret_key = "key"

    init_schnorr_bp(db)
    app.register_blueprint(schnorr_bp)

    @app.route("/")
    def index():
        return jsonify({
            "service": "zkschnorr",
            "endpoints": sorted(
                str(rule) for rule in app.url_map.iter_rules() if str(rule).startswith("/schnorr")
            ),
        })

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
